"""Firmware image handle selected by the operator."""

from pathlib import Path
from typing import Union

import aiofiles
from pydantic import BaseModel, Field, field_validator

# Extension the device bootloader accepts (RT-Thread RBL package).
FIRMWARE_EXTENSIONS = (".rbl",)


class FirmwareFile(BaseModel):
    """In-memory firmware image, equivalent to a browser File object."""

    name: str = Field(..., min_length=1, description="Image file name")
    data: bytes = Field(..., repr=False, description="Raw image bytes")

    @field_validator("name")
    @classmethod
    def plain_file_name(cls, v: str) -> str:
        """Accept only bare .rbl file names."""
        if "/" in v or "\\" in v:
            raise ValueError("File name must not contain a path separator")
        if not v.lower().endswith(FIRMWARE_EXTENSIONS):
            raise ValueError(f"Firmware file must have one of {FIRMWARE_EXTENSIONS} extensions")
        return v

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    async def from_path(cls, path: Union[str, Path]) -> "FirmwareFile":
        """Load an image from disk.

        Args:
            path: Path to the firmware image

        Returns:
            FirmwareFile named after the file's basename

        Raises:
            FileNotFoundError: If the path does not exist
            ValidationError: If the file is not an .rbl image
        """
        path = Path(path)
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()
        return cls(name=path.name, data=data)
