MAIN_IMAGE_NAME = 'main.jpg'
THUMB_IMAGE_NAME = 'thumb.jpg'

TOKEN_COOKIE_NAME = 'token'

ADMIN_USERS_PAGE_SIZE = 10

PHONE_NUMBER_PLACEHOLDER = 'N/A'
