from chalice import Response

from chalicelib.constants.status_codes import http200
from chalicelib.restaurants import Restaurant, find_restaurant_id_by_owner
from chalicelib.users import Account
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, exceptions
from chalicelib.utils.auth import Role
from chalicelib.utils.logger import logger


def owner_has_verified_restaurant(store, owner_id: str) -> bool:
    restaurant_id = find_restaurant_id_by_owner(store, owner_id)
    if restaurant_id is None:
        return False
    try:
        return Restaurant.init_by_id(store, restaurant_id).is_verified is True
    except exceptions.RecordNotFound:
        return False


def issue_session(context, email, password) -> dict:
    """
    Resolves the account by email and checks the password.
    Owners of a not yet verified restaurant are rejected before the password is checked
    """
    if not isinstance(email, str) or not email.strip() or not isinstance(password, str):
        raise exceptions.InvalidCredentials('Invalid credentials')

    account = Account.init_by_email(context.store, email)
    if account is None:
        logger.warning('issue_session ::: unknown email')
        raise exceptions.InvalidCredentials('Invalid credentials')

    if account.role_enum == Role.RESTAURANT_OWNER and not owner_has_verified_restaurant(context.store, account.id_):
        raise exceptions.PendingApproval('Your restaurant is pending approval. '
                                         'You cannot log in until it is verified by the admin.')

    if not utils_auth.password_matches(account.password_hash, password):
        logger.warning(f'issue_session ::: wrong password for account {account.id_}')
        raise exceptions.InvalidCredentials('Invalid credentials')

    token = utils_auth.issue_token(context.settings, account.id_, account.name_, account.role_enum)
    logger.info(f'issue_session ::: token issued for account {account.id_}, role={account.role}')
    return {'message': 'Login successful', 'user_name': account.name_, 'userType': account.role, 'token': token}


@utils_app.log_start_finish
def endpoint_login(request, context) -> Response:
    request_body = utils_data.parse_raw_body(request)
    body = issue_session(context, request_body.get('email'), request_body.get('password'))
    return Response(status_code=http200, body=body,
                    headers={'Set-Cookie': utils_auth.build_token_cookie(context.settings, body['token'])})


@utils_app.log_start_finish
def endpoint_logout(request, context) -> Response:
    return Response(status_code=http200, body={'message': 'Logged out successfully'},
                    headers={'Set-Cookie': utils_auth.build_cleared_cookie(context.settings)})


@utils_app.log_start_finish
def endpoint_me(request, context) -> Response:
    utils_auth.authenticate_request(request, context, with_account=True)
    account = Account(context.store, **request.auth_result['account'])
    body = {
        'id': account.id_,
        'name': account.name_,
        'email': account.email,
        'phone': account.phone,
        'userType': account.role
    }
    if account.role_enum == Role.RESTAURANT_OWNER:
        body['restaurantId'] = find_restaurant_id_by_owner(context.store, account.id_)
    return Response(status_code=http200, body=body)
