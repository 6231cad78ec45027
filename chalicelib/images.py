import copy
from email.message import Message
from io import BytesIO
from typing import Tuple, Dict, Optional

from PIL import Image, UnidentifiedImageError
from requests_toolbelt.multipart.decoder import MultipartDecoder, NonMultipartContentTypeException, \
    ImproperBodyPartContentException

from chalicelib.constants.constants import MAIN_IMAGE_NAME, THUMB_IMAGE_NAME
from chalicelib.utils import data as utils_data, exceptions
from chalicelib.utils.logger import logger
from chalicelib.utils.s3 import FileStorage

IMAGE_CONTENT_TYPE = 'image/jpeg'


class UploadedFile:
    def __init__(self, field_name: str, filename: Optional[str], content: bytes, content_type: Optional[str]):
        self.field_name = field_name
        self.filename = filename
        self.content = content
        self.content_type = content_type


def get_resize_width_height(image: Image, max_width: int) -> Tuple[int, int]:
    width, height = image.size
    divider = max([width, height]) / max_width
    if divider <= 1:
        return width, height
    return max(int(width / divider), 1), max(int(height / divider), 1)


def get_thumbnail(image: Image, max_thumbnail_width: int) -> Image:
    image_thumb = copy.deepcopy(image)
    image_thumb.thumbnail(size=get_resize_width_height(image_thumb, max_thumbnail_width))
    return image_thumb


def compress_images(image_file_obj: BytesIO, max_img_width: int, max_thumbnail_width: int) -> Tuple[bytes, bytes]:
    """
    Returns (main, thumbnail) JPEG bytes of the uploaded image
    """
    try:
        image: Image = Image.open(image_file_obj)
        image.load()
    except (UnidentifiedImageError, OSError):
        raise exceptions.ValidationException('Uploaded file is not a valid image')
    image = image.convert('RGB')
    image = image.resize(size=get_resize_width_height(image, max_img_width))

    image_thumb: Image = get_thumbnail(image, max_thumbnail_width)

    buf_main = BytesIO()
    image.save(buf_main, format='JPEG', optimize=True, quality=85)

    buf_thumb = BytesIO()
    image_thumb.save(buf_thumb, format='JPEG', optimize=True, quality=85)

    return buf_main.getvalue(), buf_thumb.getvalue()


def upload_image(file_storage: FileStorage, file_content: bytes, images_path: str) -> Tuple[str, str]:
    """
    Compresses an image and stores main and thumbnail versions under images_path.
    Returns the object keys (main, thumbnail)
    """
    settings = file_storage.settings
    content_main, content_thumb = compress_images(BytesIO(file_content), settings.max_img_width,
                                                  settings.max_thumbnail_width)
    path_main, path_thumb = f'{images_path}/{MAIN_IMAGE_NAME}', f'{images_path}/{THUMB_IMAGE_NAME}'
    file_storage.upload_file_to_s3(content_main, path_main, IMAGE_CONTENT_TYPE)
    file_storage.upload_file_to_s3(content_thumb, path_thumb, IMAGE_CONTENT_TYPE)
    return path_main, path_thumb


def restaurant_images_path(restaurant_id: str) -> str:
    return f'restaurants/{restaurant_id}/images'


def dish_images_path(restaurant_id: str, dish_id: str) -> str:
    return f'restaurants/{restaurant_id}/dishes/{dish_id}/images'


def is_multipart(current_request) -> bool:
    content_type = current_request.headers.get('content-type') or ''
    return content_type.lower().startswith('multipart/form-data')


def _parse_content_disposition(value: str) -> Tuple[Optional[str], Optional[str]]:
    message = Message()
    message['content-disposition'] = value
    return message.get_param('name', header='content-disposition'), message.get_filename()


def parse_multipart_request_data(current_request) -> Tuple[Dict, Dict[str, UploadedFile]]:
    """
    Splits a multipart/form-data body into text fields and uploaded files
    """
    try:
        decoder = MultipartDecoder(current_request.raw_body, current_request.headers['content-type'])
    except (NonMultipartContentTypeException, ImproperBodyPartContentException) as error:
        raise exceptions.ValidationException(f'Malformed multipart body: {error}')

    fields, files = {}, {}
    for part in decoder.parts:
        disposition = part.headers.get(b'Content-Disposition', b'').decode('utf-8')
        name, filename = _parse_content_disposition(disposition)
        if not name:
            logger.warning(f'parse_multipart_request_data ::: skipping part without name, {disposition=}')
            continue
        if filename is not None:
            if part.content:
                content_type = part.headers.get(b'Content-Type', b'').decode('utf-8') or None
                files[name] = UploadedFile(name, filename, part.content, content_type)
        else:
            fields[name] = part.text
    logger.debug(f'parse_multipart_request_data ::: fields={list(fields)}, files={list(files)}')
    return fields, files


def parse_form_or_json(current_request) -> Tuple[Dict, Dict[str, UploadedFile]]:
    if is_multipart(current_request):
        fields, files = parse_multipart_request_data(current_request)
        return utils_data.cleanup_dict(fields, ['', None]), files
    return utils_data.parse_raw_body(current_request), {}
