# db attribute name -> UI field name, None means the attribute never leaves the backend
from_db = {
    'partkey': None,
    'sortkey': None,
    'record_type': None,
    'password_hash': None,
    'restaurant_thumbnail': None,
    'id_': 'id',
    'name_': 'name',
    'status_': 'status',
    'owner_id': 'user',
    'user_id': 'userId',
    'restaurant_id': 'restaurantId',
    'customer_name': 'customerName',
    'restaurant_name': 'restaurantName',
    'food_type': 'foodType',
    'restaurant_image': 'restaurantImage',
    'is_verified': 'isVerified',
    'dish_name': 'dishName',
    'created_at': 'createdAt',
    'date_updated': 'dateUpdated',
    'updated_by': 'updatedBy'
}
