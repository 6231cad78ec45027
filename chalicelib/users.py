import math
from datetime import date
from typing import Tuple, List, Dict, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ADMIN_USERS_PAGE_SIZE
from chalicelib.constants.status_codes import http200, http201
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, exceptions
from chalicelib.utils.auth import Role
from chalicelib.utils.db import Store, is_conditional_check_failed
from chalicelib.utils.logger import logger

REGISTRATION_FIELDS = ('name', 'email', 'password', 'phone', 'dob', 'role')


def normalize_email(email) -> Optional[str]:
    return email.strip().lower() if isinstance(email, str) else None


def parse_dob(value) -> str:
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        raise exceptions.ValidationException('Field dob must be an ISO date (YYYY-MM-DD)')


def parse_role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise exceptions.ValidationException(f'Unknown role {value}, expected one of {[r.value for r in Role]}')


def find_account_id_by_email(store: Store, email: str) -> Optional[str]:
    try:
        email_record = store.get_db_item(keys_structure.account_emails_pk,
                                         keys_structure.account_emails_sk.format(email=normalize_email(email)))
    except exceptions.RecordNotFound:
        return None
    return email_record['account_id']


class Account(EntityBase):
    pk = keys_structure.accounts_pk
    sk = keys_structure.accounts_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'name_': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'email': lambda x: isinstance(x, str) and '@' in x,
        'password_hash': lambda x: isinstance(x, str),
        'phone': lambda x: isinstance(x, str),
        'dob': lambda x: isinstance(x, str),
        'role': lambda x: x in [role.value for role in Role],
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'date_updated': lambda x: isinstance(x, str)
    }

    def __init__(self, store, id_, **kwargs):
        EntityBase.__init__(self, store, id_)

        self.name_: str = kwargs.get('name_')
        self.email: str = normalize_email(kwargs.get('email'))
        self.password_hash: str = kwargs.get('password_hash')
        self.phone: str = kwargs.get('phone')
        self.dob: str = kwargs.get('dob')
        self.role: str = kwargs.get('role')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'account'

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    @classmethod
    def init_by_id(cls, store, id_):
        c = cls(store, id_)
        c.__init__(store, **c._get_db_item())
        return c

    @classmethod
    def init_by_db_record(cls, store, record: Dict):
        return cls(store, **record)

    @classmethod
    def init_by_email(cls, store, email):
        account_id = find_account_id_by_email(store, email)
        if account_id is None:
            return None
        try:
            return cls.init_by_id(store, account_id)
        except exceptions.RecordNotFound:
            logger.error(f'init_by_email ::: email claim points to a missing account {account_id=}')
            return None

    @classmethod
    def init_new(cls, store, request_body: Dict, allowed_roles=None):
        missing = [field for field in REGISTRATION_FIELDS if request_body.get(field) in (None, '')]
        if missing:
            raise exceptions.ValidationException(f'All fields are required, missing: {", ".join(missing)}')
        password = request_body['password']
        if not isinstance(password, str):
            raise exceptions.ValidationException('Field password must be a string')
        role = parse_role(request_body['role'])
        if allowed_roles is not None and role not in allowed_roles:
            raise exceptions.ValidationException(f'Role {role.value} can not be registered here')
        return cls(
            store,
            id_=str(uuid4()),
            name_=request_body['name'],
            email=request_body['email'],
            password_hash=utils_auth.hash_password(password),
            phone=str(request_body['phone']),
            dob=parse_dob(request_body['dob']),
            role=role.value
        )

    @classmethod
    def init_request_register(cls, request, context):
        logger.info("init_request_register ::: started")
        request_body = utils_data.parse_raw_body(request)
        account = cls.init_new(context.store, request_body)
        if account.role_enum == Role.ADMIN:
            # only an admin can create another admin
            utils_auth.authenticate_request(request, context, source=utils_auth.TokenSource.HEADER,
                                            roles=[Role.ADMIN])
        return account

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_check_email(request, context) -> Response:
        email = normalize_email(utils_data.parse_raw_body(request).get('email'))
        if not email:
            raise exceptions.ValidationException('Field email is required')
        exists = find_account_id_by_email(context.store, email) is not None
        return Response(status_code=http200, body={
            'exists': exists,
            'message': 'Email is already in use' if exists else 'Email is available'
        })

    @utils_app.log_start_finish
    def endpoint_register(self) -> Response:
        self.register()
        return Response(status_code=http201, body={'message': 'User registered successfully!', 'userId': self.id_})

    def register(self) -> str:
        """
        Claims the email and stores the account.
        The email claim is a conditional put, so one email can never own two accounts
        """
        self._init_db_record()
        self._validate_mandatory_fields()
        email_key = {
            'partkey': keys_structure.account_emails_pk,
            'sortkey': keys_structure.account_emails_sk.format(email=self.email)
        }
        try:
            self.store.put_db_record(
                {**email_key, 'account_id': self.id_, 'record_type': 'account_email'},
                condition_expression='attribute_not_exists(partkey)'
            )
        except ClientError as error:
            if is_conditional_check_failed(error):
                raise exceptions.ValidationException('Email already exists')
            raise
        try:
            self._create_db_record(condition_expression='attribute_not_exists(partkey)')
        except Exception:
            self.store.delete_db_record(email_key)
            raise
        return self.id_

    @utils_app.log_start_finish
    def endpoint_delete(self) -> Response:
        self._delete_db_record()
        self.store.delete_db_record({
            'partkey': keys_structure.account_emails_pk,
            'sortkey': keys_structure.account_emails_sk.format(email=self.email)
        })
        return Response(status_code=http200, body={'message': 'User deleted successfully'})

    @classmethod
    @utils_auth.authenticate_class(source=utils_auth.TokenSource.HEADER, roles=[Role.ADMIN])
    def init_request_admin_delete(cls, request, context, account_id):
        logger.info("init_request_admin_delete ::: started")
        return cls.init_by_id(context.store, account_id)

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_get_users_page(request, context) -> Response:
        utils_auth.authenticate_request(request, context, source=utils_auth.TokenSource.HEADER, roles=[Role.ADMIN])
        try:
            page = max(int((request.query_params or {}).get('page', 1)), 1)
        except ValueError:
            page = 1
        records: List[Dict] = context.store.query_items_paged(Key('partkey').eq(keys_structure.accounts_pk))
        records.sort(key=lambda record: record.get('date_created', ''))
        start = (page - 1) * ADMIN_USERS_PAGE_SIZE
        users = [Account.init_by_db_record(context.store, record).to_ui()
                 for record in records[start:start + ADMIN_USERS_PAGE_SIZE]]
        return Response(status_code=http200, body={
            'users': users,
            'totalPages': math.ceil(len(records) / ADMIN_USERS_PAGE_SIZE),
            'currentPage': page
        })

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(account_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name_': self.name_,
            'email': self.email,
            'password_hash': self.password_hash,
            'phone': self.phone,
            'dob': self.dob,
            'role': self.role,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def to_ui(self):
        return self._to_ui()


def create_admin_account(store: Store, payload: Dict) -> str:
    """
    Bootstraps an admin account, used by the bootstrap_admin lambda function
    """
    account = Account.init_new(store, {**payload, 'role': Role.ADMIN.value}, allowed_roles=[Role.ADMIN])
    account_id = account.register()
    logger.info(f'create_admin_account ::: admin {account_id=} created')
    return account_id
