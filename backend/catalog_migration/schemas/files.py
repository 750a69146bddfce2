"""Pydantic schemas for the admin file search endpoint."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FileSummary(BaseModel):
    """One row of the admin file listing."""

    uid: str = Field(..., description="File public identifier")
    name: str = Field(..., description="File name")
    file_created_at: datetime | None = Field(
        default=None, description="When the physical file was created"
    )

    model_config = ConfigDict(from_attributes=True)


class FileSearchResponse(BaseModel):
    """Response of GET /admin/rest/files."""

    status: str = Field(default="ok", description="'ok' on success")
    files: list[FileSummary] = Field(..., description="Matching files, newest first")
    matching: int = Field(..., ge=0, description="Number of files matching the query")
    total: int = Field(..., ge=0, description="Total number of files")
