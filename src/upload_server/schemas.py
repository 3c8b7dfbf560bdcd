####################################
# --- Request/response schemas --- #
####################################

import os
from typing import List

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

FORBIDDEN_FILENAME_CHARS = ("/", "\\", "\x00")


class Filedata(BaseModel):
    """A stored file, identified by its name inside the storage directory."""
    filename: str = Field(
        description="The on-disk base name of the file.",
        json_schema_extra={"example": "report.pdf"},
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("filename")
    @classmethod
    def check_filename_is_a_single_segment(cls, v: str) -> str:
        if v in ("", ".", ".."):
            raise ValueError(f"'{v}' is not a file name")
        if any(char in v for char in FORBIDDEN_FILENAME_CHARS):
            raise ValueError(f"File name '{v}' must not contain path separators")
        return v

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry) -> "Filedata":
        return cls(filename=entry.name)


class UploadResponse(BaseModel):
    """Response model for `POST /upload`."""
    message: str = Field(description="A message about the operation.")
    files: List[Filedata] = Field(description="The files stored by this request.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "File uploaded successfully!",
                "files": [{"filename": "report.pdf"}],
            }
        }
    )


class GetFilesResponse(BaseModel):
    """Response model for `GET /v1/files`."""
    files: List[Filedata]
    upload_count: int = Field(description="Uploads admitted since the server started.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "files": [{"filename": "report.pdf"}, {"filename": "file_upload_2"}],
                "upload_count": 2,
            }
        }
    )


class FileDownloadQuery(BaseModel):
    """Query parameters for `GET /download`."""
    filename: str = Field(description="Name of the stored file to download.")
