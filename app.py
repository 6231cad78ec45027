from chalice import Chalice, CORSConfig

from chalicelib import auth, orders, menu_items, restaurants, users
from chalicelib.utils import app as utils_app
from chalicelib.utils.app import AppContext
from chalicelib.utils.logger import logger, log_request, set_log_level
from chalicelib.utils.settings import Settings

APP_NAME = 'food-ordering-platform'
FORM_CONTENT_TYPES = ['application/json', 'multipart/form-data']


def create_app(context: AppContext = None) -> Chalice:
    if context is None:
        context = AppContext.from_settings(Settings.from_env())
    set_log_level(context.settings.log_level)

    app = Chalice(app_name=APP_NAME)
    app.api.binary_types.insert(0, 'multipart/form-data')

    cors_config = CORSConfig(allow_origin=context.settings.cors_allow_origin, allow_credentials=True)

    @app.middleware('http')
    def log_http_request(event, get_response):
        logger.current_request_id = utils_app.get_request_id(event.lambda_context)
        log_request(event)
        return get_response(event)

    @app.lambda_function(name='bootstrap_admin')
    def bootstrap_admin(event, lambda_context):
        """
        Creates the first admin account, invoked manually after the deployment
        """
        logger.current_request_id = utils_app.get_request_id(lambda_context)
        return {'userId': users.create_admin_account(context.store, event)}

    # AUTH
    @app.route('/api/auth/register', methods=['POST'], cors=cors_config)
    @utils_app.request_exception_handler
    def register():
        return users.Account.init_request_register(app.current_request, context).endpoint_register()

    @app.route('/api/auth/check-email', methods=['POST'], cors=cors_config)
    @utils_app.request_exception_handler
    def check_email():
        return users.Account.endpoint_check_email(app.current_request, context)

    @app.route('/api/auth/login', methods=['POST'], cors=cors_config)
    @utils_app.request_exception_handler
    def login():
        return auth.endpoint_login(app.current_request, context)

    @app.route('/api/auth/logout', methods=['POST'], cors=cors_config)
    @utils_app.request_exception_handler
    def logout():
        return auth.endpoint_logout(app.current_request, context)

    @app.route('/api/auth/me', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def me():
        return auth.endpoint_me(app.current_request, context)

    # RESTAURANTS
    @app.route('/api/restaurants', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_restaurants():
        return restaurants.Restaurant.endpoint_get_verified(app.current_request, context)

    @app.route('/api/restaurants/register', methods=['POST'], content_types=FORM_CONTENT_TYPES, cors=cors_config)
    @utils_app.request_exception_handler
    def register_restaurant():
        return restaurants.Restaurant.init_request_register(app.current_request, context).\
            endpoint_register(context.file_storage)

    @app.route('/api/restaurants/search', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def search_restaurants():
        return restaurants.Restaurant.endpoint_search(app.current_request, context)

    @app.route('/api/restaurants/user/{user_id}', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_restaurant_by_owner(user_id):
        return restaurants.Restaurant.endpoint_get_by_owner(app.current_request, context, user_id)

    @app.route('/api/restaurants/{restaurant_id}/orders', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_restaurant_orders(restaurant_id):
        """
        restaurant owner operation
        """
        return orders.endpoint_list_for_restaurant(app.current_request, context, restaurant_id)

    # MENU
    @app.route('/api/restaurants/add-dish', methods=['POST'], content_types=FORM_CONTENT_TYPES, cors=cors_config)
    @utils_app.request_exception_handler
    def add_dish():
        """
        restaurant owner operation
        """
        return menu_items.endpoint_add_dish(app.current_request, context)

    @app.route('/api/restaurants/{restaurant_id}/menu', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_menu(restaurant_id):
        return menu_items.endpoint_get_menu(app.current_request, context, restaurant_id)

    @app.route('/api/restaurants/menu/{restaurant_id}', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_menu_by_category(restaurant_id):
        return menu_items.endpoint_get_menu_by_category(app.current_request, context, restaurant_id)

    # ORDERS
    @app.route('/api/orders', methods=['POST'], cors=cors_config)
    @utils_app.request_exception_handler
    def create_order():
        return orders.Order.init_request_create(app.current_request, context).endpoint_create()

    @app.route('/api/orders', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_orders():
        """
        orders of the restaurant owned by the requester, newest first
        """
        return orders.endpoint_list_for_owner(app.current_request, context)

    @app.route('/api/orders/history', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_orders_history():
        return orders.endpoint_history(app.current_request, context)

    @app.route('/api/orders/{order_id}', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def get_order(order_id):
        """
        only the customer who placed the order can read it
        """
        return orders.Order.init_request_get(app.current_request, context, order_id).endpoint_get_by_id()

    @app.route('/api/orders/{order_id}', methods=['PUT'], cors=cors_config)
    @utils_app.request_exception_handler
    def set_order_status(order_id):
        return orders.Order.init_request_set_status(app.current_request, context, order_id).endpoint_set_status()

    # ADMIN
    @app.route('/api/admin/users', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_get_users():
        return users.Account.endpoint_get_users_page(app.current_request, context)

    @app.route('/api/admin/users/{user_id}', methods=['DELETE'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_delete_user(user_id):
        return users.Account.init_request_admin_delete(app.current_request, context, user_id).endpoint_delete()

    @app.route('/api/admin/restaurants/pending', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_get_pending_restaurants():
        return restaurants.Restaurant.endpoint_admin_get_by_verification(app.current_request, context, False)

    @app.route('/api/admin/restaurants/verified', methods=['GET'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_get_verified_restaurants():
        return restaurants.Restaurant.endpoint_admin_get_by_verification(app.current_request, context, True)

    @app.route('/api/admin/verify/{restaurant_id}', methods=['PUT'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_verify_restaurant(restaurant_id):
        return restaurants.Restaurant.init_request_admin(app.current_request, context, restaurant_id).\
            endpoint_verify(app.current_request)

    @app.route('/api/admin/restaurants/approve/{restaurant_id}', methods=['POST'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_approve_restaurant(restaurant_id):
        return restaurants.Restaurant.init_request_admin(app.current_request, context, restaurant_id).\
            endpoint_approve()

    @app.route('/api/admin/restaurants/reject/{restaurant_id}', methods=['POST'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_reject_restaurant(restaurant_id):
        return restaurants.Restaurant.init_request_admin(app.current_request, context, restaurant_id).\
            endpoint_delete('Restaurant rejected and removed from database')

    @app.route('/api/admin/restaurants/{restaurant_id}', methods=['DELETE'], cors=cors_config)
    @utils_app.request_exception_handler
    def admin_delete_restaurant(restaurant_id):
        return restaurants.Restaurant.init_request_admin(app.current_request, context, restaurant_id).\
            endpoint_delete()

    return app


app = create_app()
