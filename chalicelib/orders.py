from decimal import Decimal
from enum import Enum
from typing import Tuple, List, Dict, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError
from chalice import Response

from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PHONE_NUMBER_PLACEHOLDER
from chalicelib.constants.status_codes import http200, http201
from chalicelib.restaurants import Restaurant, find_restaurant_id_by_owner
from chalicelib.users import Account
from chalicelib.utils import auth as utils_auth, data as utils_data, app as utils_app, exceptions
from chalicelib.utils.auth import Role, Identity
from chalicelib.utils.db import Store, is_conditional_check_failed
from chalicelib.utils.logger import logger

CENT = Decimal('0.01')


class OrderStatus(str, Enum):
    PENDING = 'Pending'
    ACCEPTED = 'Accepted'
    DECLINED = 'Declined'
    SHIPPED = 'Shipped'


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED, OrderStatus.DECLINED},
    OrderStatus.ACCEPTED: {OrderStatus.SHIPPED, OrderStatus.DECLINED},
    OrderStatus.DECLINED: set(),
    OrderStatus.SHIPPED: set()
}

HISTORY_STATUSES = (OrderStatus.SHIPPED, OrderStatus.DECLINED)


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise exceptions.ValidationException(
            f'Unknown order status {value}, expected one of {[status.value for status in OrderStatus]}')


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def parse_order_item(raw_item, position: int) -> Dict:
    if not isinstance(raw_item, dict):
        raise exceptions.ValidationException(f'Order item #{position} must be an object')
    name = raw_item.get('name')
    if not isinstance(name, str) or not name.strip():
        raise exceptions.ValidationException(f'Order item #{position} must have a name')
    if raw_item.get('quantity') is None or raw_item.get('price') is None:
        raise exceptions.ValidationException(f'Order item #{position} must have quantity and price')
    quantity = utils_data.to_decimal(raw_item['quantity'], 'quantity')
    if quantity <= 0 or quantity != quantity.to_integral_value():
        raise exceptions.ValidationException(f'Order item #{position} quantity must be a positive integer')
    price = utils_data.to_decimal(raw_item['price'], 'price')
    if price < 0:
        raise exceptions.ValidationException(f'Order item #{position} price must not be negative')
    return {'name': name, 'quantity': int(quantity), 'price': price.quantize(CENT)}


def items_total(items: List[Dict]) -> Decimal:
    return sum((item['price'] * item['quantity'] for item in items), Decimal(0)).quantize(CENT)


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'customer_name': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'items': lambda x: isinstance(x, list) and len(x) > 0,
        'total': lambda x: isinstance(x, Decimal),
        'restaurant_id': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'created_at': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'status_': lambda x: x in [status.value for status in OrderStatus],
        'date_updated': lambda x: isinstance(x, str),
        'updated_by': lambda x: isinstance(x, str)
    }

    def __init__(self, store, id_, **kwargs):
        EntityBase.__init__(self, store, id_)

        self.customer_name: str = kwargs.get('customer_name')
        self.items: List[Dict] = kwargs.get('items') or []
        self.total: Decimal = kwargs.get('total')
        self.status_: str = kwargs.get('status_') or OrderStatus.PENDING.value
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.user_id: str = kwargs.get('user_id')
        self.created_at: str = kwargs.get('created_at') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.created_at
        self.updated_by: str = kwargs.get('updated_by') or self.user_id
        self.record_type = 'order'

    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.status_)

    @classmethod
    def init_by_id(cls, store, order_id):
        c = cls(store, order_id)
        c.__init__(store, **c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class(with_account=True)
    def init_request_create(cls, request, context):
        logger.info("init_request_create ::: started")
        identity: Identity = request.auth_result['identity']
        request_body = utils_data.parse_raw_body(request)

        missing = [field for field in ('customerName', 'items', 'total', 'restaurantId')
                   if request_body.get(field) in (None, '', [])]
        if missing:
            raise exceptions.ValidationException(f'All fields are required, missing: {", ".join(missing)}')
        if not isinstance(request_body['customerName'], str) or not request_body['customerName'].strip():
            raise exceptions.ValidationException('Field customerName must be a non empty string')
        if not isinstance(request_body['items'], list):
            raise exceptions.ValidationException('Field items must be a list')

        items = [parse_order_item(raw_item, position) for position, raw_item in enumerate(request_body['items'], 1)]
        total = utils_data.to_decimal(request_body['total'], 'total')
        if total.quantize(CENT) != items_total(items):
            raise exceptions.ValidationException(
                f'Order total {total} does not match the sum of its items {items_total(items)}')

        return cls(
            context.store,
            id_=str(uuid4()),
            customer_name=request_body['customerName'],
            items=items,
            total=total.quantize(CENT),
            restaurant_id=str(request_body['restaurantId']),
            user_id=identity.account_id
        )

    @utils_app.log_start_finish
    def endpoint_create(self) -> Response:
        restaurant = Restaurant.init_by_id(self.store, self.restaurant_id)
        if not restaurant.is_verified:
            raise exceptions.ValidationException(f'Restaurant {self.restaurant_id} is not accepting orders')
        self._create_db_record(condition_expression='attribute_not_exists(partkey)')
        return Response(status_code=http201, body=self.to_ui())

    @classmethod
    @utils_auth.authenticate_class(with_account=True)
    def init_request_get(cls, request, context, order_id):
        logger.info("init_request_get ::: started")
        order = cls.init_by_id(context.store, order_id)
        if order.user_id != request.auth_result['user_id']:
            raise exceptions.Forbidden('Not authorized to view this order')
        return order

    @utils_app.log_start_finish
    def endpoint_get_by_id(self) -> Response:
        return Response(status_code=http200, body=self.to_ui())

    @classmethod
    @utils_auth.authenticate_class(roles=[Role.RESTAURANT_OWNER], with_account=True)
    def init_request_set_status(cls, request, context, order_id):
        logger.info("init_request_set_status ::: started")
        target = parse_status(utils_data.parse_raw_body(request).get('status'))
        order = cls.init_by_id(context.store, order_id)
        owner_id = request.auth_result['user_id']
        if find_restaurant_id_by_owner(context.store, owner_id) != order.restaurant_id:
            raise exceptions.Forbidden("Only the restaurant's owner can change the order status")
        order.request_data = {'target_status': target, 'updated_by': owner_id}
        return order

    @utils_app.log_start_finish
    def endpoint_set_status(self) -> Response:
        self.set_status(self.request_data['target_status'], self.request_data['updated_by'])
        return Response(status_code=http200, body=self.to_ui())

    def set_status(self, target: OrderStatus, updated_by: str):
        """
        Moves the order to the target status.
        The write is conditional on the status read before, so of two concurrent
        changes only one succeeds and the other gets InvalidTransition
        """
        current = self.status
        if not can_transition(current, target):
            raise exceptions.InvalidTransition(f'Order can not move from {current.value} to {target.value}')
        self.status_ = target.value
        self.updated_by = updated_by
        try:
            self._update_db_record(condition_expression=Attr('status_').eq(current.value))
        except ClientError as error:
            if is_conditional_check_failed(error):
                self.status_ = current.value
                raise exceptions.InvalidTransition(f'Order status was changed concurrently, '
                                                   f'it is not {current.value} anymore')
            raise
        logger.info(f'set_status ::: order {self.id_} moved {current.value} -> {target.value}')

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'customer_name': self.customer_name,
            'items': self.items,
            'total': self.total,
            'status_': self.status_,
            'restaurant_id': self.restaurant_id,
            'user_id': self.user_id,
            'created_at': self.created_at,
            'date_updated': self.date_updated,
            'updated_by': self.updated_by
        }

    def to_ui(self):
        return self._to_ui()


def get_restaurant_orders(store: Store, restaurant_id: str, statuses: Optional[Tuple[OrderStatus, ...]] = None
                          ) -> List[Order]:
    filter_expression = Attr('restaurant_id').eq(restaurant_id)
    if statuses:
        filter_expression = filter_expression & Attr('status_').is_in([status.value for status in statuses])
    records = store.query_items_paged(Key('partkey').eq(keys_structure.orders_pk),
                                      filter_expression=filter_expression)
    orders = [Order(store, **record) for record in records]
    orders.sort(key=lambda order: order.created_at, reverse=True)
    return orders


def get_owned_restaurant_id(store: Store, owner_id: str) -> str:
    restaurant_id = find_restaurant_id_by_owner(store, owner_id)
    if restaurant_id is None:
        raise exceptions.RecordNotFound('Restaurant not found for this user')
    return restaurant_id


@utils_app.log_start_finish
def endpoint_list_for_owner(request, context) -> Response:
    identity = utils_auth.authenticate_request(request, context, roles=[Role.RESTAURANT_OWNER], with_account=True)
    restaurant_id = get_owned_restaurant_id(context.store, identity.account_id)
    orders = get_restaurant_orders(context.store, restaurant_id)
    return Response(status_code=http200, body=[order.to_ui() for order in orders])


@utils_app.log_start_finish
def endpoint_list_for_restaurant(request, context, restaurant_id) -> Response:
    identity = utils_auth.authenticate_request(request, context, roles=[Role.RESTAURANT_OWNER], with_account=True)
    restaurant = Restaurant.init_by_id(context.store, restaurant_id)
    if restaurant.owner_id != identity.account_id:
        raise exceptions.Forbidden('Not authorized to view orders of this restaurant')
    orders = get_restaurant_orders(context.store, restaurant.id_)
    return Response(status_code=http200, body=[order.to_ui() for order in orders])


@utils_app.log_start_finish
def endpoint_history(request, context) -> Response:
    identity = utils_auth.authenticate_request(request, context, roles=[Role.RESTAURANT_OWNER], with_account=True)
    restaurant_id = get_owned_restaurant_id(context.store, identity.account_id)
    phones: Dict[str, str] = {}
    history = []
    for order in get_restaurant_orders(context.store, restaurant_id, statuses=HISTORY_STATUSES):
        if order.user_id not in phones:
            try:
                phones[order.user_id] = Account.init_by_id(context.store, order.user_id).phone \
                    or PHONE_NUMBER_PLACEHOLDER
            except exceptions.RecordNotFound:
                phones[order.user_id] = PHONE_NUMBER_PLACEHOLDER
        history.append({**order.to_ui(), 'phoneNumber': phones[order.user_id]})
    return Response(status_code=http200, body=history)
