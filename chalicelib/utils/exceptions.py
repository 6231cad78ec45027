__all__ = ["ApiException", "ValidationException", "NoToken", "InvalidToken", "TokenExpired", "InvalidCredentials",
           "AccountNotFound", "Forbidden", "PendingApproval", "RecordNotFound", "InvalidTransition",
           "NumberOfRetriesExceeded", "MissingSetting"]


class ApiException(Exception):
    STATUS_CODE = 500
    ERROR_CODE = 'InternalError'
    LEVEL = 'exception'


# Validations exceptions
class ValidationException(ApiException):
    STATUS_CODE = 400
    ERROR_CODE = 'ValidationError'
    LEVEL = 'warning'


# Authentication exceptions
class NoToken(ApiException):
    STATUS_CODE = 401
    ERROR_CODE = 'NoToken'
    LEVEL = 'warning'


class InvalidToken(ApiException):
    STATUS_CODE = 401
    ERROR_CODE = 'InvalidToken'
    LEVEL = 'warning'


class TokenExpired(ApiException):
    STATUS_CODE = 401
    ERROR_CODE = 'Expired'
    LEVEL = 'warning'


class InvalidCredentials(ApiException):
    STATUS_CODE = 401
    ERROR_CODE = 'InvalidCredentials'
    LEVEL = 'warning'


class AccountNotFound(ApiException):
    STATUS_CODE = 401
    ERROR_CODE = 'AccountNotFound'
    LEVEL = 'warning'


# Authorization exceptions
class Forbidden(ApiException):
    STATUS_CODE = 403
    ERROR_CODE = 'Forbidden'
    LEVEL = 'warning'


class PendingApproval(ApiException):
    STATUS_CODE = 403
    ERROR_CODE = 'PendingApproval'
    LEVEL = 'warning'


# DynamoDB exceptions
class RecordNotFound(ApiException):
    STATUS_CODE = 404
    ERROR_CODE = 'NotFound'
    LEVEL = 'warning'


# Order lifecycle exceptions
class InvalidTransition(ApiException):
    STATUS_CODE = 409
    ERROR_CODE = 'InvalidTransition'
    LEVEL = 'warning'


# DB Performance Exception
class NumberOfRetriesExceeded(ApiException):
    pass


# Configuration exceptions, raised at start up and never turned into a response
class MissingSetting(Exception):
    pass
