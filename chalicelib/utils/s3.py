import tempfile

from chalicelib.utils.boto_clients import get_s3_client
from chalicelib.utils.logger import logger
from chalicelib.utils.settings import Settings


class FileStorage:
    """
    Public files bucket (restaurant and dish images)
    """

    def __init__(self, settings: Settings, s3_client=None):
        self.settings = settings
        self._s3_client = s3_client

    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = get_s3_client(self.settings)
        return self._s3_client

    def websites_files_bucket(self):
        return self.settings.files_bucket_name

    def upload_file_to_s3(self, body, file_path, content_type):
        with tempfile.TemporaryFile() as tf:
            tf.write(body)
            tf.seek(0)
            self.s3_client().upload_fileobj(tf, self.websites_files_bucket(), f'{file_path}',
                                            ExtraArgs={'ContentType': content_type})
        logger.info(f'upload_file_to_s3:: SUCCESS, file_path:{file_path} ')
        return file_path

    def public_url(self, file_path):
        return f"{self.settings.public_files_url.rstrip('/')}/{file_path}"
