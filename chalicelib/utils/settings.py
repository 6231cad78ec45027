import os

from chalicelib.utils.exceptions import MissingSetting


def _env_bool(value) -> bool:
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class Settings:
    """
    Process configuration, read once from environment variables
    (configured per stage in .chalice/config.json)
    """

    def __init__(self, **kwargs):
        self.gen_table_name: str = kwargs.get('gen_table_name', 'food-ordering-gen')
        self.endpoint_url: str = kwargs.get('endpoint_url')
        self.aws_region: str = kwargs.get('aws_region', 'eu-central-1')
        self.jwt_secret: str = kwargs.get('jwt_secret')
        self.jwt_algorithm: str = kwargs.get('jwt_algorithm', 'HS256')
        self.token_ttl_seconds: int = int(kwargs.get('token_ttl_seconds', 3600))
        self.cookie_secure: bool = _env_bool(kwargs.get('cookie_secure', False))
        self.cors_allow_origin: str = kwargs.get('cors_allow_origin', 'http://localhost:3000')
        self.files_bucket_name: str = kwargs.get('files_bucket_name', 'food-ordering-files')
        self.public_files_url: str = kwargs.get('public_files_url', 'http://localhost:5000/uploads')
        self.default_restaurant_image: str = kwargs.get('default_restaurant_image',
                                                        'http://localhost:3000/default-restaurant.png')
        self.max_img_width: int = int(kwargs.get('max_img_width', 1200))
        self.max_thumbnail_width: int = int(kwargs.get('max_thumbnail_width', 300))
        self.log_level: str = str(kwargs.get('log_level', 'DEBUG')).upper()

        # required, there is no fallback signing key
        if not self.jwt_secret or not str(self.jwt_secret).strip():
            raise MissingSetting('JWT_SECRET must be set to a non empty value')

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        env_map = {
            'gen_table_name': 'GEN_TABLE_NAME',
            'endpoint_url': 'ENDPOINT_URL',
            'aws_region': 'AWS_REGION',
            'jwt_secret': 'JWT_SECRET',
            'jwt_algorithm': 'JWT_ALGORITHM',
            'token_ttl_seconds': 'TOKEN_TTL_SECONDS',
            'cookie_secure': 'COOKIE_SECURE',
            'cors_allow_origin': 'CORS_ALLOW_ORIGIN',
            'files_bucket_name': 'WEBSITES_FILES_BUCKET_NAME',
            'public_files_url': 'PUBLIC_FILES_URL',
            'default_restaurant_image': 'DEFAULT_RESTAURANT_IMAGE',
            'max_img_width': 'MAX_IMG_WIDTH',
            'max_thumbnail_width': 'MAX_THUMBNAIL_WIDTH',
            'log_level': 'LOG_LEVEL'
        }
        return cls(**{attr: environ[var] for attr, var in env_map.items() if environ.get(var)})
