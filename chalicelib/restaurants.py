from enum import Enum
from typing import Tuple, List, Dict, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from chalice import Response

from chalicelib import images
from chalicelib.base_class_entity import EntityBase, now_iso
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http201
from chalicelib.users import Account
from chalicelib.utils import auth as utils_auth, data as utils_data, exceptions, app as utils_app
from chalicelib.utils.auth import Role
from chalicelib.utils.db import Store, is_conditional_check_failed
from chalicelib.utils.logger import logger
from chalicelib.utils.s3 import FileStorage

REGISTRATION_FIELDS = ('user', 'restaurantName', 'sector', 'locality', 'building', 'floor', 'foodType')
SEARCHABLE_FIELDS = ('restaurant_name', 'sector', 'locality')


class RestaurantStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


def find_restaurant_id_by_owner(store: Store, owner_id: str) -> Optional[str]:
    try:
        owner_record = store.get_db_item(keys_structure.restaurant_owners_pk,
                                         keys_structure.restaurant_owners_sk.format(owner_id=owner_id))
    except exceptions.RecordNotFound:
        return None
    return owner_record['restaurant_id']


def _is_text(x) -> bool:
    return isinstance(x, str) and len(x.strip()) > 0


class Restaurant(EntityBase):
    pk = keys_structure.restaurants_pk
    sk = keys_structure.restaurants_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'owner_id': lambda x: isinstance(x, str),
        'restaurant_name': _is_text,
        'sector': _is_text,
        'locality': _is_text,
        'building': _is_text,
        'floor': _is_text,
        'food_type': _is_text,
        'menu': lambda x: isinstance(x, list),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'is_verified': lambda x: isinstance(x, bool),
        'status_': lambda x: x in [status.value for status in RestaurantStatus],
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'restaurant_image': lambda x: isinstance(x, str),
        'restaurant_thumbnail': lambda x: isinstance(x, str)
    }

    def __init__(self, store, id_, **kwargs):
        EntityBase.__init__(self, store, id_)

        self.owner_id: str = kwargs.get('owner_id')
        self.restaurant_name: str = kwargs.get('restaurant_name')
        self.sector: str = kwargs.get('sector')
        self.locality: str = kwargs.get('locality')
        self.building: str = kwargs.get('building')
        self.floor: str = kwargs.get('floor')
        self.food_type: str = kwargs.get('food_type')
        self.restaurant_image: Optional[str] = kwargs.get('restaurant_image')
        self.restaurant_thumbnail: Optional[str] = kwargs.get('restaurant_thumbnail')
        self.menu: List[Dict] = kwargs.get('menu') or []
        self.is_verified: bool = kwargs.get('is_verified', False)
        self.status_: str = kwargs.get('status_') or RestaurantStatus.PENDING.value
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'restaurant'

    @classmethod
    def init_by_id(cls, store, restaurant_id):
        c = cls(store, restaurant_id)
        c.__init__(store, **c._get_db_item())
        return c

    @classmethod
    def init_by_owner_id(cls, store, owner_id):
        restaurant_id = find_restaurant_id_by_owner(store, owner_id)
        if restaurant_id is None:
            raise exceptions.RecordNotFound(f'Restaurant of user {owner_id} not found')
        return cls.init_by_id(store, restaurant_id)

    @classmethod
    def init_request_register(cls, request, context):
        logger.info("init_request_register ::: started")
        fields, files = images.parse_form_or_json(request)
        missing = [field for field in REGISTRATION_FIELDS if not fields.get(field)]
        if missing:
            raise exceptions.ValidationException(f'All fields are required, missing: {", ".join(missing)}')

        try:
            owner = Account.init_by_id(context.store, str(fields['user']))
        except exceptions.RecordNotFound:
            raise exceptions.ValidationException(f"User {fields['user']} does not exist")
        if owner.role_enum != Role.RESTAURANT_OWNER:
            raise exceptions.ValidationException('Only restaurant owners can register a restaurant')

        restaurant = cls(
            context.store,
            id_=str(uuid4()),
            owner_id=owner.id_,
            restaurant_name=fields['restaurantName'],
            sector=str(fields['sector']),
            locality=str(fields['locality']),
            building=str(fields['building']),
            floor=str(fields['floor']),
            food_type=fields['foodType']
        )
        restaurant.request_data = {'image': files.get('restaurantImage')}
        return restaurant

    @utils_app.log_start_finish
    def endpoint_register(self, file_storage: FileStorage) -> Response:
        self._init_db_record()
        self._validate_mandatory_fields()
        owner_key = {
            'partkey': keys_structure.restaurant_owners_pk,
            'sortkey': keys_structure.restaurant_owners_sk.format(owner_id=self.owner_id)
        }
        try:
            self.store.put_db_record(
                {**owner_key, 'restaurant_id': self.id_, 'record_type': 'restaurant_owner'},
                condition_expression='attribute_not_exists(partkey)'
            )
        except ClientError as error:
            if is_conditional_check_failed(error):
                raise exceptions.ValidationException('This user already has a registered restaurant')
            raise

        try:
            image = (self.request_data or {}).get('image')
            if image is not None:
                self.restaurant_image, self.restaurant_thumbnail = images.upload_image(
                    file_storage, image.content, images.restaurant_images_path(self.id_))
            self._create_db_record(condition_expression='attribute_not_exists(partkey)')
        except Exception:
            self.store.delete_db_record(owner_key)
            raise
        return Response(status_code=http201, body={'message': 'Restaurant registered successfully!',
                                                   'restaurantId': self.id_})

    @staticmethod
    def query_restaurants(store: Store, is_verified: Optional[bool] = None) -> List['Restaurant']:
        filter_expression = Attr('is_verified').eq(is_verified) if is_verified is not None else None
        records: List[Dict] = store.query_items_paged(
            Key('partkey').eq(keys_structure.restaurants_pk),
            filter_expression=filter_expression
        )
        restaurants = [Restaurant(store, **record) for record in records]
        restaurants.sort(key=lambda restaurant: restaurant.date_created)
        return restaurants

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_get_verified(request, context) -> Response:
        restaurants = [restaurant.to_ui(context.file_storage)
                       for restaurant in Restaurant.query_restaurants(context.store, is_verified=True)]
        logger.info(f"endpoint_get_verified ::: returning restaurants={[rest['id'] for rest in restaurants]}")
        return Response(status_code=http200, body=restaurants)

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_search(request, context) -> Response:
        query = ((request.query_params or {}).get('query') or '').strip().lower()
        if not query:
            raise exceptions.ValidationException('Query parameter is required')
        found = [restaurant.to_ui(context.file_storage)
                 for restaurant in Restaurant.query_restaurants(context.store, is_verified=True)
                 if restaurant.matches(query)]
        return Response(status_code=http200, body=found)

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_get_by_owner(request, context, owner_id) -> Response:
        restaurant = Restaurant.init_by_owner_id(context.store, owner_id)
        return Response(status_code=http200, body=restaurant.to_ui(context.file_storage))

    @staticmethod
    @utils_app.log_start_finish
    def endpoint_admin_get_by_verification(request, context, is_verified: bool) -> Response:
        utils_auth.authenticate_request(request, context, source=utils_auth.TokenSource.HEADER, roles=[Role.ADMIN])
        restaurants = [restaurant.to_admin_ui(context.file_storage)
                       for restaurant in Restaurant.query_restaurants(context.store, is_verified=is_verified)]
        return Response(status_code=http200, body=restaurants)

    @classmethod
    @utils_auth.authenticate_class(source=utils_auth.TokenSource.HEADER, roles=[Role.ADMIN])
    def init_request_admin(cls, request, context, restaurant_id):
        logger.info("init_request_admin ::: started")
        return cls.init_by_id(context.store, restaurant_id)

    @utils_app.log_start_finish
    def endpoint_verify(self, request) -> Response:
        is_verified = utils_data.parse_raw_body(request).get('isVerified')
        if not isinstance(is_verified, bool):
            raise exceptions.ValidationException('Invalid verification status')
        self.set_verification(is_verified)
        return Response(status_code=http200, body={
            'message': f"Restaurant {'approved' if is_verified else 'declined'} successfully!"
        })

    @utils_app.log_start_finish
    def endpoint_approve(self) -> Response:
        self.set_verification(True)
        return Response(status_code=http200, body={'message': 'Restaurant Approved'})

    @utils_app.log_start_finish
    def endpoint_delete(self, message='Restaurant deleted successfully') -> Response:
        self.delete()
        return Response(status_code=http200, body={'message': message})

    def set_verification(self, is_verified: bool):
        self.is_verified = is_verified
        self.status_ = (RestaurantStatus.APPROVED if is_verified else RestaurantStatus.REJECTED).value
        self._update_db_record(condition_expression='attribute_exists(partkey)')

    def delete(self):
        self._delete_db_record()
        try:
            owner_record = self.store.get_db_item(keys_structure.restaurant_owners_pk,
                                                  keys_structure.restaurant_owners_sk.format(owner_id=self.owner_id))
        except exceptions.RecordNotFound:
            return
        # the owner may have registered a new restaurant meanwhile
        if owner_record.get('restaurant_id') == self.id_:
            self.store.delete_db_record({'partkey': owner_record['partkey'], 'sortkey': owner_record['sortkey']})

    def matches(self, query: str) -> bool:
        return any(query in (getattr(self, field) or '').lower() for field in SEARCHABLE_FIELDS)

    def image_url(self, file_storage: FileStorage) -> str:
        if self.restaurant_image:
            return file_storage.public_url(self.restaurant_image)
        return file_storage.settings.default_restaurant_image

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(restaurant_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'owner_id': self.owner_id,
            'restaurant_name': self.restaurant_name,
            'sector': self.sector,
            'locality': self.locality,
            'building': self.building,
            'floor': self.floor,
            'food_type': self.food_type,
            'restaurant_image': self.restaurant_image,
            'restaurant_thumbnail': self.restaurant_thumbnail,
            'menu': self.menu,
            'is_verified': self.is_verified,
            'status_': self.status_,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def to_ui(self, file_storage: FileStorage) -> Dict:
        """
        Public representation, dishes are served by the menu endpoints
        """
        item = self._to_ui()
        item.pop('menu', None)
        item['restaurantImage'] = self.image_url(file_storage)
        return item

    def to_admin_ui(self, file_storage: FileStorage) -> Dict:
        item = self.to_ui(file_storage)
        try:
            owner = Account.init_by_id(self.store, self.owner_id)
            item['owner'] = {'name': owner.name_, 'phone': owner.phone, 'email': owner.email}
        except exceptions.RecordNotFound:
            logger.warning(f'to_admin_ui ::: owner {self.owner_id} of restaurant {self.id_} not found')
            item['owner'] = None
        return item
