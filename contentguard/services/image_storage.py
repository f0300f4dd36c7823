"""
Object storage for flagged images (Supabase Storage REST API)
"""
import logging
import time

import httpx

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
}


class ImageStorage:
    def __init__(self, base_url, service_key, bucket='moderated-images', timeout=5.0, http_client=None):
        self.base_url = base_url.rstrip('/') if base_url else None
        self.service_key = service_key or None
        self.bucket = bucket
        self.timeout = timeout
        self.http_client = http_client or httpx.Client(timeout=httpx.Timeout(timeout))

    def is_configured(self):
        return self.base_url is not None and self.service_key is not None

    @staticmethod
    def object_path(user_id, extension):
        return f"{user_id}/{user_id}-{int(time.time() * 1000)}.{extension}"

    def public_url(self, path):
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def upload(self, user_id, image_bytes, filename=None, content_type=None):
        """Store an image and return its public URL, or None when it could not be stored"""
        if not self.is_configured():
            logger.info("Image storage is not configured, skipping upload")
            return None

        extension = 'jpg'
        if filename and '.' in filename:
            extension = filename.rsplit('.', 1)[1].lower() or extension
        content_type = content_type or CONTENT_TYPES.get(extension, 'application/octet-stream')

        path = self.object_path(user_id, extension)
        try:
            response = self.http_client.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                content=image_bytes,
                headers={
                    'Authorization': f"Bearer {self.service_key}",
                    'apikey': self.service_key,
                    'Content-Type': content_type,
                },
                timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to upload flagged image for {user_id}: {str(e)}")
            return None

        return self.public_url(path)
