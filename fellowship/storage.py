import os
import aioboto3
from botocore.config import Config
from botocore.exceptions import ClientError

# Support both AWS_S3_BUCKET (preferred) and legacy AWS_S3_BUCKET_NAME
S3_BUCKET = os.getenv('AWS_S3_BUCKET') or os.getenv('AWS_S3_BUCKET_NAME') or 'post_media'
# Optional override, e.g. a CDN or an S3-compatible endpoint's public path
PUBLIC_BASE_URL = os.getenv('STORAGE_PUBLIC_BASE_URL')
S3_ENDPOINT_URL = os.getenv('AWS_S3_ENDPOINT_URL')


class StorageNotConfigured(Exception):
    pass


class ObjectExists(Exception):
    """An object is already stored under the requested key."""


def _region() -> str:
    # Prefer AWS_S3_REGION if provided; fall back to AWS_REGION, then us-east-1
    return os.getenv('AWS_S3_REGION') or os.getenv('AWS_REGION', 'us-east-1')


def _client(session: aioboto3.Session):
    return session.client('s3', region_name=_region(),
                          endpoint_url=S3_ENDPOINT_URL,
                          aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
                          aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                          config=Config(signature_version='s3v4'))


def public_url(key: str) -> str:
    if PUBLIC_BASE_URL:
        return f"{PUBLIC_BASE_URL.rstrip('/')}/{key}"
    return f"https://{S3_BUCKET}.s3.{_region()}.amazonaws.com/{key}"


def _precondition_failed(error: ClientError) -> bool:
    code = error.response.get('Error', {}).get('Code')
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    return code in ('PreconditionFailed', 'ConditionalRequestConflict') or status == 412


async def upload_object(key: str, body: bytes, content_type: str) -> str:
    """Store body under a new key and return its public URL; an existing key is never overwritten."""
    if not os.getenv('AWS_ACCESS_KEY_ID') or not os.getenv('AWS_SECRET_ACCESS_KEY'):
        raise StorageNotConfigured('Server storage configuration missing')
    session = aioboto3.Session()
    async with _client(session) as client:
        try:
            await client.put_object(Bucket=S3_BUCKET, Key=key, Body=body, ContentType=content_type,
                                    CacheControl='max-age=31536000', IfNoneMatch='*')
        except ClientError as e:
            if _precondition_failed(e):
                raise ObjectExists(key) from e
            raise
    return public_url(key)
