import boto3

from botocore.config import Config

from chalicelib.utils.settings import Settings


def get_aws_config_ddb(region_name: str) -> Config:
    return Config(retries={'max_attempts': 30}, region_name=region_name)


def get_s3_client(settings: Settings):
    # Clients provide a low-level interface to AWS services whose methods map close to 1:1 with service APIs.
    if settings.endpoint_url:
        return boto3.client('s3', endpoint_url=settings.endpoint_url, region_name=settings.aws_region)
    return boto3.client('s3', region_name=settings.aws_region)
