"""Supabase Storage implementation for product images."""

from dataclasses import dataclass

from supabase import Client

from supplement_scanner.services.product_images import ImageStore


@dataclass
class SupabaseImageStore(ImageStore):
    """Uploads product images into a Supabase Storage bucket."""

    client: Client
    bucket: str = "supplement-images"

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes and return the public URL."""
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path,
            data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return bucket.get_public_url(path)
