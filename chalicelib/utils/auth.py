import functools
from collections import namedtuple
from datetime import datetime, timedelta, timezone
from enum import Enum
from http.cookies import SimpleCookie
from typing import Optional, Iterable

import jwt
from chalice.app import Request
from werkzeug.security import generate_password_hash, check_password_hash

from chalicelib.constants import keys_structure
from chalicelib.constants.constants import TOKEN_COOKIE_NAME
from chalicelib.utils import exceptions as utils_exceptions
from chalicelib.utils.logger import logger
from chalicelib.utils.settings import Settings


class Role(str, Enum):
    CUSTOMER = 'customer'
    RESTAURANT_OWNER = 'restaurant_owner'
    ADMIN = 'admin'


class TokenSource(str, Enum):
    HEADER = 'header'
    COOKIE = 'cookie'
    ANY = 'any'


class VerificationFailure(str, Enum):
    NO_TOKEN = 'NoToken'
    EXPIRED = 'Expired'
    INVALID = 'Invalid'


Identity = namedtuple('Identity', ['account_id', 'name', 'role'])

# exactly one of identity / failure is set
TokenVerification = namedtuple('TokenVerification', ['identity', 'failure'])

failure_exceptions = {
    VerificationFailure.NO_TOKEN: (utils_exceptions.NoToken, 'No token provided'),
    VerificationFailure.EXPIRED: (utils_exceptions.TokenExpired, 'Token expired. Please log in again'),
    VerificationFailure.INVALID: (utils_exceptions.InvalidToken, 'Invalid token'),
}


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def password_matches(password_hash: Optional[str], password: str) -> bool:
    if not password_hash or not isinstance(password, str):
        return False
    return check_password_hash(password_hash, password)


def issue_token(settings: Settings, account_id: str, name: str, role: Role) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        'id': account_id,
        'name': name,
        'userType': role.value,
        'iat': now,
        'exp': now + timedelta(seconds=settings.token_ttl_seconds)
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get('authorization') or ''
    scheme, _, token = auth_header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def get_cookie_token(request: Request) -> Optional[str]:
    cookie_header = request.headers.get('cookie')
    if not cookie_header:
        return None
    # pairs are read one by one, a malformed neighbour cookie must not hide the token
    for pair in cookie_header.split(';'):
        name, separator, value = pair.strip().partition('=')
        if separator and name.strip() == TOKEN_COOKIE_NAME:
            value = value.strip().strip('"')
            return value or None
    return None


def extract_token(request: Request, source: TokenSource) -> Optional[str]:
    if source == TokenSource.HEADER:
        return get_bearer_token(request)
    if source == TokenSource.COOKIE:
        return get_cookie_token(request)
    return get_bearer_token(request) or get_cookie_token(request)


def verify_token(settings: Settings, token: Optional[str]) -> TokenVerification:
    if not token:
        return TokenVerification(None, VerificationFailure.NO_TOKEN)
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={'require': ['exp', 'id', 'userType']}
        )
    except jwt.ExpiredSignatureError:
        return TokenVerification(None, VerificationFailure.EXPIRED)
    except jwt.InvalidTokenError as error:
        logger.warning(f'verify_token ::: {error=}')
        return TokenVerification(None, VerificationFailure.INVALID)

    try:
        role = Role(claims['userType'])
    except ValueError:
        return TokenVerification(None, VerificationFailure.INVALID)
    return TokenVerification(Identity(str(claims['id']), claims.get('name'), role), None)


def authorize(identity: Identity, roles: Optional[Iterable[Role]]):
    if roles and identity.role not in roles:
        raise utils_exceptions.Forbidden(f'Access denied for role {identity.role.value}')


def resolve_account(store, identity: Identity) -> dict:
    try:
        return store.get_db_item(keys_structure.accounts_pk,
                                 keys_structure.accounts_sk.format(account_id=identity.account_id))
    except utils_exceptions.RecordNotFound:
        raise utils_exceptions.AccountNotFound('Account of this token does not exist anymore')


def authenticate_request(request: Request, context, source: TokenSource = TokenSource.ANY,
                         roles: Optional[Iterable[Role]] = None, with_account: bool = False) -> Identity:
    """
    The only token check of the API: extracts the token from the chosen source,
    verifies it, gates by role and optionally re-reads the account record.
    Result is stored in request.auth_result
    """
    verification = verify_token(context.settings, extract_token(request, source))
    if verification.failure is not None:
        exception_class, message = failure_exceptions[verification.failure]
        raise exception_class(message)

    identity = verification.identity
    authorize(identity, roles)
    account = resolve_account(context.store, identity) if with_account else None

    setattr(request, 'auth_result', {'user_id': identity.account_id, 'role': identity.role,
                                     'identity': identity, 'account': account})
    logger.info(f'authenticate_request ::: SUCCESS, user_id={identity.account_id}, role={identity.role.value}')
    return identity


def authenticate_class(source: TokenSource = TokenSource.ANY, roles: Optional[Iterable[Role]] = None,
                       with_account: bool = False):
    """
    Wrapper for class methods (cls, request, context, ...) which require user's authentication
    """

    def decorator(func):
        @functools.wraps(func)
        def result_auth(cls, request, context, *args, **kwargs):
            authenticate_request(request, context, source=source, roles=roles, with_account=with_account)
            return func(cls, request, context, *args, **kwargs)
        return result_auth

    return decorator


def build_token_cookie(settings: Settings, token: str) -> str:
    cookie = SimpleCookie()
    cookie[TOKEN_COOKIE_NAME] = token
    cookie[TOKEN_COOKIE_NAME]['httponly'] = True
    cookie[TOKEN_COOKIE_NAME]['samesite'] = 'Strict'
    cookie[TOKEN_COOKIE_NAME]['path'] = '/'
    cookie[TOKEN_COOKIE_NAME]['max-age'] = settings.token_ttl_seconds
    if settings.cookie_secure:
        cookie[TOKEN_COOKIE_NAME]['secure'] = True
    return cookie[TOKEN_COOKIE_NAME].OutputString()


def build_cleared_cookie(settings: Settings) -> str:
    cookie = SimpleCookie()
    cookie[TOKEN_COOKIE_NAME] = ''
    cookie[TOKEN_COOKIE_NAME]['httponly'] = True
    cookie[TOKEN_COOKIE_NAME]['samesite'] = 'Strict'
    cookie[TOKEN_COOKIE_NAME]['path'] = '/'
    cookie[TOKEN_COOKIE_NAME]['max-age'] = 0
    cookie[TOKEN_COOKIE_NAME]['expires'] = 'Thu, 01 Jan 1970 00:00:00 GMT'
    if settings.cookie_secure:
        cookie[TOKEN_COOKIE_NAME]['secure'] = True
    return cookie[TOKEN_COOKIE_NAME].OutputString()
