import functools
from typing import Callable
from uuid import uuid4

from chalice import Response

from chalicelib.utils.db import Store
from chalicelib.utils.exceptions import ApiException
from chalicelib.utils.logger import logger, log_exception
from chalicelib.utils.s3 import FileStorage
from chalicelib.utils.settings import Settings


class AppContext:
    """
    Everything a request handler needs besides the request itself.
    Built once per application and passed to the handlers explicitly.
    """

    def __init__(self, settings: Settings, store: Store, file_storage: FileStorage):
        self.settings = settings
        self.store = store
        self.file_storage = file_storage

    @classmethod
    def from_settings(cls, settings: Settings):
        return cls(settings=settings, store=Store(settings), file_storage=FileStorage(settings))


def get_request_id(lambda_context) -> str:
    aws_request_id = getattr(lambda_context, 'aws_request_id', None) or str(uuid4())
    return aws_request_id.split('-')[-1]


def error_response(error: Exception, msg: str = "", status_code: int = 400, *args, **kwargs):
    log_exception(error=error, msg=msg, status_code=status_code, *args, **kwargs)
    if isinstance(error, ApiException):
        message, error_code = str(error), error.ERROR_CODE
    else:
        message, error_code = 'Internal Server Error', 'InternalError'
    return Response(
        body={
            'message': message,
            'error_code': error_code,
            'exception': error.__class__.__name__,
            'error_id': getattr(logger, 'current_request_id')
        },
        status_code=status_code,
        headers={'Content-Type': 'application/json'}
    )


def request_exception_handler(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        try:
            logger.info(f'Calling function {func.__name__}')
            return func(*args, **kwargs)
        except ApiException as api_error:
            return error_response(
                error=api_error,
                msg=f'function = {func.__name__} , error = {api_error}',
                status_code=api_error.STATUS_CODE)
        except Exception as exception:
            return error_response(
                error=exception,
                msg=f'function = {func.__name__}, error = {exception}',
                status_code=500)
    return result


def log_start_finish(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        logger.info(f'{func.__name__} ::: started')
        response = func(*args, **kwargs)
        logger.info(f'{func.__name__} ::: finished')
        return response
    return result
