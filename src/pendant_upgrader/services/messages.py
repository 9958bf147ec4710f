"""Localized messages for device error codes and upgrade status."""

import logging
from typing import Dict, Optional

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "error.1001": "Invalid parameter",
        "error.1002": "Resource conflict",
        "error.2000": "Firmware erase failed",
        "error.2001": "Firmware write failed",
        "error.unknown": "Unknown error",
        "error.networkError": "Network connection failed",
        "firmware.noFile": "Please select a firmware file first",
        "firmware.busy": "Another firmware operation is in progress",
        "firmware.emptyFile": "Firmware file is empty",
        "firmware.invalidFile": "Invalid firmware file, please select an .rbl package",
        "firmware.uploading": "Uploading firmware...",
        "firmware.noUpload": "No firmware upload in progress",
        "firmware.notWritten": "Firmware has not been written yet, restart not allowed",
        "firmware.cancelled": "Firmware upload cancelled",
        "firmware.written": "Firmware has been written, restart required to take effect",
        "firmware.rebooting": "Device is restarting, please wait...",
        "firmware.reconnecting": "Trying to reconnect to device...",
        "firmware.reconnectFailed": "Unable to connect to device, please refresh manually",
    },
    "zh": {
        "error.1001": "参数校验失败",
        "error.1002": "资源冲突",
        "error.2000": "固件擦除失败",
        "error.2001": "固件写入失败",
        "error.unknown": "未知错误",
        "error.networkError": "网络连接失败",
        "firmware.noFile": "请先选择固件文件",
        "firmware.busy": "已有固件操作正在进行",
        "firmware.emptyFile": "固件文件为空",
        "firmware.invalidFile": "无效的固件文件，请选择 .rbl 固件包",
        "firmware.uploading": "正在上传固件...",
        "firmware.noUpload": "当前没有进行中的固件上传",
        "firmware.notWritten": "固件尚未写入，不能重启",
        "firmware.cancelled": "固件上传已取消",
        "firmware.written": "固件已写入，需要重启后生效",
        "firmware.rebooting": "设备正在重启，请稍等...",
        "firmware.reconnecting": "正在尝试重新连接设备...",
        "firmware.reconnectFailed": "无法连接到设备，请手动刷新页面",
    },
}


class MessageCatalog:
    """Message lookup with a per-language table and English fallback."""

    def __init__(self, lang: str = "en"):
        self.logger = logging.getLogger("pendant_upgrader.messages")
        if lang not in TRANSLATIONS:
            self.logger.warning(f"Unknown language '{lang}', falling back to en")
            lang = "en"
        self.lang = lang

    def t(self, key: str) -> str:
        """Translate a key, returning the key itself when missing everywhere."""
        table = TRANSLATIONS[self.lang]
        if key in table:
            return table[key]
        return TRANSLATIONS["en"].get(key, key)

    def resolve_error_message(
        self, code: Optional[int] = None, fallback: Optional[str] = None
    ) -> str:
        """Resolve an error to display text.

        Lookup chain: code in language table → fallback → "unknown error".
        """
        if code is not None:
            message = TRANSLATIONS[self.lang].get(f"error.{code}")
            if message:
                return message
        return fallback or self.t("error.unknown")
