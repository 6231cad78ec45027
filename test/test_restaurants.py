from io import BytesIO

import pytest
from PIL import Image

from chalicelib.constants.constants import MAIN_IMAGE_NAME
from chalicelib.constants.status_codes import http200, http201
from test.utils.fixtures import TEST_DEFAULT_RESTAURANT_IMAGE, TEST_PUBLIC_FILES_URL, TEST_BUCKET_NAME
from test.utils.request_utils import make_request, make_multipart_request, response_body, register_account, \
    login_token, create_admin_token, register_restaurant, create_verified_restaurant


def restaurant_fields(owner_id, **kwargs):
    return {
        'user': owner_id,
        'restaurantName': 'Tandoori Nights',
        'sector': 'Sector 22',
        'locality': 'Mohali',
        'building': 'Block A',
        'floor': '1',
        'foodType': 'North Indian',
        **kwargs
    }


def jpeg_bytes(width=800, height=600) -> bytes:
    buffer = BytesIO()
    Image.new('RGB', (width, height), color=(200, 30, 30)).save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.mark.local_db_test
def test_register_restaurant_json(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    owner_id = register_account(chalice_gateway, role='restaurant_owner', email='owner@test-domain.com')

    response = make_request(chalice_gateway, endpoint='/api/restaurants/register', method='POST',
                            json_body=restaurant_fields(owner_id))
    assert response['statusCode'] == http201, response['body']
    body = response_body(response)
    assert body['message'] == 'Restaurant registered successfully!'

    response = make_request(chalice_gateway, endpoint='/api/admin/restaurants/pending', token=admin_token)
    pending = response_body(response)
    assert [restaurant['id'] for restaurant in pending] == [body['restaurantId']]
    assert pending[0]['isVerified'] is False
    assert pending[0]['status'] == 'pending'
    assert pending[0]['user'] == owner_id
    assert pending[0]['owner'] == {'name': 'Test User', 'phone': '+911234567890', 'email': 'owner@test-domain.com'}


@pytest.mark.local_db_test
def test_register_restaurant_multipart_with_image(chalice_gateway, app_context):
    owner_id = register_account(chalice_gateway, role='restaurant_owner', email='owner@test-domain.com')
    fields = restaurant_fields(owner_id)
    fields['restaurantImage'] = ('front.jpg', jpeg_bytes(), 'image/jpeg')

    response = make_multipart_request(chalice_gateway, '/api/restaurants/register', fields)
    assert response['statusCode'] == http201, response['body']
    restaurant_id = response_body(response)['restaurantId']

    image_key = f'restaurants/{restaurant_id}/images/{MAIN_IMAGE_NAME}'
    head = app_context.file_storage.s3_client().head_object(Bucket=TEST_BUCKET_NAME, Key=image_key)
    assert head['ContentType'] == 'image/jpeg'

    response = make_request(chalice_gateway, endpoint=f'/api/restaurants/user/{owner_id}')
    assert response['statusCode'] == http200
    assert response_body(response)['restaurantImage'] == f'{TEST_PUBLIC_FILES_URL}/{image_key}'


@pytest.mark.local_db_test
def test_register_restaurant_validation(chalice_gateway):
    owner_id = register_account(chalice_gateway, role='restaurant_owner', email='owner@test-domain.com')
    customer_id = register_account(chalice_gateway, email='customer@test-domain.com')

    response = make_request(chalice_gateway, endpoint='/api/restaurants/register', method='POST',
                            json_body=restaurant_fields(owner_id, sector=''))
    assert response['statusCode'] == 400

    response = make_request(chalice_gateway, endpoint='/api/restaurants/register', method='POST',
                            json_body=restaurant_fields(customer_id))
    assert response['statusCode'] == 400

    response = make_request(chalice_gateway, endpoint='/api/restaurants/register', method='POST',
                            json_body=restaurant_fields('unknown-user-id'))
    assert response['statusCode'] == 400

    register_restaurant(chalice_gateway, owner_id)
    response = make_request(chalice_gateway, endpoint='/api/restaurants/register', method='POST',
                            json_body=restaurant_fields(owner_id))
    assert response['statusCode'] == 400
    assert response_body(response)['message'] == 'This user already has a registered restaurant'


@pytest.mark.local_db_test
def test_public_list_contains_verified_only(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    _, verified_id, _ = create_verified_restaurant(chalice_gateway, admin_token, 'owner1@test-domain.com')
    pending_owner = register_account(chalice_gateway, role='restaurant_owner', email='owner2@test-domain.com',
                                     name='Second Owner')
    register_restaurant(chalice_gateway, pending_owner, restaurant_name='Still Pending')

    response = make_request(chalice_gateway, endpoint='/api/restaurants')
    assert response['statusCode'] == http200
    restaurants = response_body(response)
    assert [restaurant['id'] for restaurant in restaurants] == [verified_id]
    assert restaurants[0]['restaurantImage'] == TEST_DEFAULT_RESTAURANT_IMAGE
    assert restaurants[0]['isVerified'] is True
    assert 'menu' not in restaurants[0]


@pytest.mark.local_db_test
def test_search_restaurants(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    _, spice_id, _ = create_verified_restaurant(chalice_gateway, admin_token, 'owner1@test-domain.com',
                                                restaurant_name='Spice Garden', sector='Sector 17')
    _, pizza_id, _ = create_verified_restaurant(chalice_gateway, admin_token, 'owner2@test-domain.com',
                                                restaurant_name='Pizza Point', sector='Sector 35', phone='+1')

    response = make_request(chalice_gateway, endpoint='/api/restaurants/search', query='query=SPICE')
    assert [restaurant['id'] for restaurant in response_body(response)] == [spice_id]

    response = make_request(chalice_gateway, endpoint='/api/restaurants/search', query='query=sector%2035')
    assert [restaurant['id'] for restaurant in response_body(response)] == [pizza_id]

    response = make_request(chalice_gateway, endpoint='/api/restaurants/search', query='query=chandigarh')
    assert {restaurant['id'] for restaurant in response_body(response)} == {spice_id, pizza_id}

    response = make_request(chalice_gateway, endpoint='/api/restaurants/search')
    assert response['statusCode'] == 400
    assert response_body(response)['message'] == 'Query parameter is required'


@pytest.mark.local_db_test
def test_get_restaurant_by_unknown_owner(chalice_gateway):
    response = make_request(chalice_gateway, endpoint='/api/restaurants/user/unknown-user-id')
    assert response['statusCode'] == 404
    assert response_body(response)['error_code'] == 'NotFound'


@pytest.mark.local_db_test
def test_admin_verify_restaurant(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    owner_id = register_account(chalice_gateway, role='restaurant_owner', email='owner@test-domain.com')
    restaurant_id = register_restaurant(chalice_gateway, owner_id)

    response = make_request(chalice_gateway, endpoint=f'/api/admin/verify/{restaurant_id}', method='PUT',
                            json_body={'isVerified': 'yes'}, token=admin_token)
    assert response['statusCode'] == 400
    assert response_body(response)['message'] == 'Invalid verification status'

    response = make_request(chalice_gateway, endpoint=f'/api/admin/verify/{restaurant_id}', method='PUT',
                            json_body={'isVerified': True}, token=admin_token)
    assert response['statusCode'] == http200
    assert response_body(response)['message'] == 'Restaurant approved successfully!'

    verified = response_body(make_request(chalice_gateway, endpoint='/api/admin/restaurants/verified',
                                          token=admin_token))
    assert [(r['id'], r['status'], r['isVerified']) for r in verified] == [(restaurant_id, 'approved', True)]

    response = make_request(chalice_gateway, endpoint=f'/api/admin/verify/{restaurant_id}', method='PUT',
                            json_body={'isVerified': False}, token=admin_token)
    assert response_body(response)['message'] == 'Restaurant declined successfully!'
    pending = response_body(make_request(chalice_gateway, endpoint='/api/admin/restaurants/pending',
                                         token=admin_token))
    assert [(r['id'], r['status'], r['isVerified']) for r in pending] == [(restaurant_id, 'rejected', False)]

    response = make_request(chalice_gateway, endpoint='/api/admin/verify/unknown-id', method='PUT',
                            json_body={'isVerified': True}, token=admin_token)
    assert response['statusCode'] == 404


@pytest.mark.local_db_test
def test_admin_reject_and_delete_restaurant(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    owner_id = register_account(chalice_gateway, role='restaurant_owner', email='owner@test-domain.com')
    restaurant_id = register_restaurant(chalice_gateway, owner_id)

    response = make_request(chalice_gateway, endpoint=f'/api/admin/restaurants/reject/{restaurant_id}',
                            method='POST', token=admin_token)
    assert response['statusCode'] == http200
    assert response_body(response)['message'] == 'Restaurant rejected and removed from database'
    assert make_request(chalice_gateway, endpoint=f'/api/restaurants/{restaurant_id}/menu')['statusCode'] == 404

    # the owner can register again once the restaurant is removed
    second_id = register_restaurant(chalice_gateway, owner_id)
    response = make_request(chalice_gateway, endpoint=f'/api/admin/restaurants/{second_id}', method='DELETE',
                            token=admin_token)
    assert response['statusCode'] == http200
    assert make_request(chalice_gateway, endpoint=f'/api/restaurants/user/{owner_id}')['statusCode'] == 404

    response = make_request(chalice_gateway, endpoint=f'/api/admin/restaurants/{second_id}', method='DELETE',
                            token=admin_token)
    assert response['statusCode'] == 404


@pytest.mark.local_db_test
def test_admin_restaurant_endpoints_forbidden_for_owner(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    _, restaurant_id, owner_token = create_verified_restaurant(chalice_gateway, admin_token, 'owner@test-domain.com')

    response = make_request(chalice_gateway, endpoint='/api/admin/restaurants/pending', token=owner_token)
    assert response['statusCode'] == 403

    response = make_request(chalice_gateway, endpoint=f'/api/admin/restaurants/{restaurant_id}', method='DELETE',
                            token=owner_token)
    assert response['statusCode'] == 403


@pytest.mark.local_db_test
def test_restaurant_orders_only_for_its_owner(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    _, restaurant_id, owner_token = create_verified_restaurant(chalice_gateway, admin_token, 'owner1@test-domain.com')
    _, _, other_owner_token = create_verified_restaurant(chalice_gateway, admin_token, 'owner2@test-domain.com',
                                                         restaurant_name='Other Place', phone='+2')
    register_account(chalice_gateway, email='customer@test-domain.com')
    customer_token = login_token(chalice_gateway, 'customer@test-domain.com')
    make_request(chalice_gateway, endpoint='/api/orders', method='POST', token=customer_token, json_body={
        'customerName': 'Customer', 'items': [{'name': 'Paneer', 'quantity': 1, 'price': 8.5}],
        'total': 8.5, 'restaurantId': restaurant_id
    })

    response = make_request(chalice_gateway, endpoint=f'/api/restaurants/{restaurant_id}/orders', token=owner_token)
    assert response['statusCode'] == http200
    assert [order['customerName'] for order in response_body(response)] == ['Customer']

    response = make_request(chalice_gateway, endpoint=f'/api/restaurants/{restaurant_id}/orders',
                            token=other_owner_token)
    assert response['statusCode'] == 403
