import pytest

from chalicelib.constants.status_codes import http200, http201
from test.utils.request_utils import make_request, make_multipart_request, response_body, register_account, \
    login_token, create_admin_token, create_verified_restaurant


def add_dish(chalice_gateway, token, **kwargs):
    dish = {
        'dishName': 'Butter Chicken',
        'description': 'Creamy tomato gravy',
        'price': 12.5,
        'category': 'Main Course',
        **kwargs
    }
    return make_request(chalice_gateway, endpoint='/api/restaurants/add-dish', method='POST', json_body=dish,
                        token=token)


@pytest.fixture
def owner_restaurant(chalice_gateway, app_context):
    admin_token = create_admin_token(chalice_gateway, app_context)
    _, restaurant_id, owner_token = create_verified_restaurant(chalice_gateway, admin_token, 'owner@test-domain.com',
                                                               restaurant_name='Curry House')
    return restaurant_id, owner_token


@pytest.mark.local_db_test
def test_add_dish_and_get_menu(chalice_gateway, owner_restaurant):
    restaurant_id, owner_token = owner_restaurant

    response = add_dish(chalice_gateway, owner_token)
    assert response['statusCode'] == http201, response['body']
    body = response_body(response)
    assert body['message'] == 'Dish added successfully!'
    dish = body['dish']
    assert dish['dishName'] == 'Butter Chicken'
    assert dish['price'] == 12.5
    assert dish['category'] == 'Main Course'
    assert dish['id']

    add_dish(chalice_gateway, owner_token, dishName='Naan', price=2, category='Breads', description='')

    response = make_request(chalice_gateway, endpoint=f'/api/restaurants/{restaurant_id}/menu')
    assert response['statusCode'] == http200
    menu = response_body(response)
    assert menu['restaurantName'] == 'Curry House'
    assert [item['dishName'] for item in menu['menu']] == ['Butter Chicken', 'Naan']
    assert menu['menu'][0] == dish


@pytest.mark.local_db_test
def test_menu_grouped_by_category(chalice_gateway, owner_restaurant):
    restaurant_id, owner_token = owner_restaurant
    add_dish(chalice_gateway, owner_token, dishName='Butter Chicken', category='Main Course')
    add_dish(chalice_gateway, owner_token, dishName='Gulab Jamun', category='Desserts', price=4)
    add_dish(chalice_gateway, owner_token, dishName='Dal Makhani', category='Main Course', price=9)

    response = make_request(chalice_gateway, endpoint=f'/api/restaurants/menu/{restaurant_id}')
    assert response['statusCode'] == http200
    grouped = response_body(response)
    assert set(grouped) == {'Main Course', 'Desserts'}
    assert [dish['dishName'] for dish in grouped['Main Course']] == ['Butter Chicken', 'Dal Makhani']
    assert [dish['dishName'] for dish in grouped['Desserts']] == ['Gulab Jamun']


@pytest.mark.local_db_test
def test_add_dish_multipart(chalice_gateway, owner_restaurant):
    restaurant_id, owner_token = owner_restaurant
    response = make_multipart_request(chalice_gateway, '/api/restaurants/add-dish', {
        'dishName': 'Masala Dosa',
        'description': 'Crispy crepe',
        'price': '7.25',
        'category': 'South Indian',
        'restaurantId': restaurant_id
    }, token=owner_token)
    assert response['statusCode'] == http201, response['body']
    assert response_body(response)['dish']['price'] == 7.25


@pytest.mark.local_db_test
@pytest.mark.parametrize('override', [
    {'category': None},
    {'dishName': ''},
    {'price': -1},
    {'price': 'cheap'},
    {'price': None},
    {'price': 1e40},
])
def test_add_dish_validation(chalice_gateway, owner_restaurant, override):
    _, owner_token = owner_restaurant
    response = add_dish(chalice_gateway, owner_token, **override)
    assert response['statusCode'] == 400
    assert response_body(response)['error_code'] == 'ValidationError'


@pytest.mark.local_db_test
def test_add_dish_access(chalice_gateway, owner_restaurant):
    restaurant_id, owner_token = owner_restaurant

    response = add_dish(chalice_gateway, None)
    assert response['statusCode'] == 401

    register_account(chalice_gateway, email='customer@test-domain.com')
    customer_token = login_token(chalice_gateway, 'customer@test-domain.com')
    response = add_dish(chalice_gateway, customer_token)
    assert response['statusCode'] == 403

    response = add_dish(chalice_gateway, owner_token, restaurantId='someone-elses-restaurant')
    assert response['statusCode'] == 403

    menu = response_body(make_request(chalice_gateway, endpoint=f'/api/restaurants/{restaurant_id}/menu'))
    assert menu['menu'] == []


@pytest.mark.local_db_test
def test_menu_of_unknown_restaurant(chalice_gateway):
    assert make_request(chalice_gateway, endpoint='/api/restaurants/unknown-id/menu')['statusCode'] == 404
    assert make_request(chalice_gateway, endpoint='/api/restaurants/menu/unknown-id')['statusCode'] == 404
