import base64
import binascii
import logging
import os
import re
from typing import List, Optional

from config import Settings

logger = logging.getLogger(__name__)

# Get the absolute path of the 'leavedesk' directory
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
STATIC_DIR = os.path.join(BASE_DIR, "static")
BASE_UPLOAD_DIR = os.path.join(STATIC_DIR, "uploads")

# Ensure directories exist
os.makedirs(BASE_UPLOAD_DIR, exist_ok=True)

UNSAFE_NAME_RE = re.compile(r"[^\w.-]")
DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)
EXTENSION_LIST = ["png", "jpg", "jpeg", "webp", "gif", "heic"]


def is_base64_image(value) -> bool:
    return isinstance(value, str) and value.startswith("data:image")


def validate_file_extension(mime_type: str) -> str:
    extension = mime_type.split("/")[-1].lower() or "jpg"
    if extension not in EXTENSION_LIST:
        return "jpg"
    return extension


def location_link(latitude: Optional[float], longitude: Optional[float]) -> Optional[str]:
    if latitude is None or longitude is None:
        return None
    return f"http://maps.google.com/maps?q={latitude},{longitude}"


class ImageStore:
    """
    Writes images under static/uploads/<folder> and returns their public URL.

    File names are derived from the request, so saving the same image for
    the same request again overwrites the previous file.
    """

    def __init__(self, settings: Settings, upload_dir: str = BASE_UPLOAD_DIR):
        self.upload_dir = upload_dir
        self.public_url = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/static/uploads"

    async def store(self, content: bytes, mime_hint: str, destination: str, filename: str) -> Optional[str]:
        extension = validate_file_extension(mime_hint)
        token_name = f"{UNSAFE_NAME_RE.sub('_', filename)}.{extension}"
        folder = os.path.join(self.upload_dir, destination)
        try:
            os.makedirs(folder, exist_ok=True)
            with open(os.path.join(folder, token_name), "wb") as image:
                image.write(content)
        except OSError as e:
            logger.error(f"Saving image {filename} to {destination} failed: {e}")
            return None
        return f"{self.public_url}/{destination}/{token_name}"

    async def save_base64_image(self, data_url: Optional[str], filename: str, destination: str) -> Optional[str]:
        if not is_base64_image(data_url):
            return None
        match = DATA_URL_RE.match(data_url)
        if not match:
            logger.error(f"Image {filename} is not a base64 data URL")
            return None
        mime_type, payload = match.groups()
        try:
            content = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            logger.error(f"Decoding image {filename} failed: {e}")
            return None
        return await self.store(content, mime_type, destination, filename)

    async def save_many(self, data_urls: List[str], filename: str, destination: str) -> List[str]:
        urls = []
        for index, data_url in enumerate(data_urls, start=1):
            url = await self.save_base64_image(data_url, f"{filename}_{index}", destination)
            if url:
                urls.append(url)
        return urls
