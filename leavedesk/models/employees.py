from pydantic import BaseModel


class DirectoryEntry(BaseModel):
    name: str = ""
    photo_url: str = ""
