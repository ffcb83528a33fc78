from pydantic import BaseModel, Field
from typing import Optional


class MediaUploadIn(BaseModel):
    base64: Optional[str] = None
    fileName: Optional[str] = None
    contentType: Optional[str] = None
    pathPrefix: Optional[str] = None


class MediaUploadOut(BaseModel):
    publicUrl: str
    path: str


class MediaErrorOut(BaseModel):
    error: str = Field(min_length=1)
