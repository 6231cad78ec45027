from decimal import Decimal
from typing import Dict, Optional, List
from uuid import uuid4

from chalice import Response

from chalicelib import images
from chalicelib.constants.status_codes import http200, http201
from chalicelib.constants.substitute_keys import from_db
from chalicelib.restaurants import Restaurant
from chalicelib.utils import auth as utils_auth, data as utils_data, exceptions, app as utils_app
from chalicelib.utils.auth import Role
from chalicelib.utils.logger import logger
from chalicelib.utils.s3 import FileStorage


class Dish:
    """
    Menu entry, stored inline in the restaurant record's menu list
    """

    fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'dish_name': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'description': lambda x: isinstance(x, str),
        'price': lambda x: isinstance(x, Decimal) and x >= 0,
        'category': lambda x: isinstance(x, str) and len(x.strip()) > 0
    }

    def __init__(self, id_, **kwargs):
        self.id_: str = id_
        self.dish_name: str = kwargs.get('dish_name')
        self.description: str = kwargs.get('description') or ''
        self.price: Decimal = kwargs.get('price')
        self.category: str = kwargs.get('category')
        self.image: Optional[str] = kwargs.get('image')
        self.image_thumbnail: Optional[str] = kwargs.get('image_thumbnail')

    @classmethod
    def init_from_request_body(cls, request_body: Dict):
        if request_body.get('price') in (None, ''):
            raise exceptions.ValidationException('Field price is required')
        price = utils_data.to_decimal(request_body['price'], 'price').quantize(Decimal('1.00'))
        dish = cls(
            id_=str(uuid4()),
            dish_name=request_body.get('dishName'),
            description=request_body.get('description'),
            price=price,
            category=request_body.get('category')
        )
        dish.validate()
        return dish

    def validate(self):
        for key, validator_func in self.fields_validation.items():
            if validator_func(getattr(self, key)) is False:
                message = f'Validation error occurred while validating field={key}'
                logger.warning(f'validate ::: {message}')
                raise exceptions.ValidationException(message)

    def to_dict(self) -> Dict:
        item = {
            'id_': self.id_,
            'dish_name': self.dish_name,
            'description': self.description,
            'price': self.price,
            'category': self.category,
            'image': self.image,
            'image_thumbnail': self.image_thumbnail
        }
        return utils_data.cleanup_dict(item, [None])

    def to_ui(self, file_storage: FileStorage) -> Dict:
        item = self.to_dict()
        item.pop('image_thumbnail', None)
        utils_data.substitute_keys(dict_to_process=item, base_keys=from_db)
        if self.image:
            item['image'] = file_storage.public_url(self.image)
        return item


def menu_to_ui(restaurant: Restaurant, file_storage: FileStorage) -> List[Dict]:
    return [Dish(**record).to_ui(file_storage) for record in restaurant.menu]


@utils_app.log_start_finish
def endpoint_add_dish(request, context) -> Response:
    identity = utils_auth.authenticate_request(request, context, roles=[Role.RESTAURANT_OWNER])
    restaurant = Restaurant.init_by_owner_id(context.store, identity.account_id)
    fields, files = images.parse_form_or_json(request)
    if fields.get('restaurantId') and fields['restaurantId'] != restaurant.id_:
        raise exceptions.Forbidden('Dishes can only be added to your own restaurant')

    dish = Dish.init_from_request_body(fields)
    image = files.get('image')
    if image is not None:
        dish.image, dish.image_thumbnail = images.upload_image(
            context.file_storage, image.content, images.dish_images_path(restaurant.id_, dish.id_))

    context.store.append_to_db_list(restaurant._get_key(), 'menu', [dish.to_dict()])
    logger.info(f'endpoint_add_dish ::: dish {dish.id_} added to restaurant {restaurant.id_}')
    return Response(status_code=http201, body={'message': 'Dish added successfully!',
                                               'dish': dish.to_ui(context.file_storage)})


@utils_app.log_start_finish
def endpoint_get_menu(request, context, restaurant_id) -> Response:
    restaurant = Restaurant.init_by_id(context.store, restaurant_id)
    return Response(status_code=http200, body={'restaurantName': restaurant.restaurant_name,
                                               'menu': menu_to_ui(restaurant, context.file_storage)})


@utils_app.log_start_finish
def endpoint_get_menu_by_category(request, context, restaurant_id) -> Response:
    restaurant = Restaurant.init_by_id(context.store, restaurant_id)
    categorized_menu: Dict[str, List[Dict]] = {}
    for dish in menu_to_ui(restaurant, context.file_storage):
        categorized_menu.setdefault(dish['category'], []).append(dish)
    return Response(status_code=http200, body=categorized_menu)
