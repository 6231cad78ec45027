import boto3
import pytest
from chalice.config import Config
from chalice.local import LocalGateway
from moto import mock_aws

from app import create_app
from chalicelib.utils.app import AppContext
from chalicelib.utils.logger import log_message
from chalicelib.utils.settings import Settings

TEST_REGION = 'eu-central-1'
TEST_TABLE_NAME = 'food-ordering-gen-test'
TEST_BUCKET_NAME = 'food-ordering-files-test'
TEST_JWT_SECRET = 'test-jwt-secret'
TEST_PUBLIC_FILES_URL = 'https://files.test-domain.com'
TEST_DEFAULT_RESTAURANT_IMAGE = 'https://test-domain.com/default-restaurant.png'


def create_gen_table():
    dynamodb = boto3.resource('dynamodb', region_name=TEST_REGION)
    table = dynamodb.create_table(
        TableName=TEST_TABLE_NAME,
        KeySchema=[
            {'AttributeName': 'partkey', 'KeyType': 'HASH'},
            {'AttributeName': 'sortkey', 'KeyType': 'RANGE'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'partkey', 'AttributeType': 'S'},
            {'AttributeName': 'sortkey', 'AttributeType': 'S'}
        ],
        BillingMode='PAY_PER_REQUEST'
    )
    table.wait_until_exists()
    return table


def create_files_bucket():
    boto3.client('s3', region_name=TEST_REGION).create_bucket(
        Bucket=TEST_BUCKET_NAME,
        CreateBucketConfiguration={'LocationConstraint': TEST_REGION}
    )


@pytest.fixture
def aws_mock():
    with mock_aws():
        create_gen_table()
        create_files_bucket()
        yield


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        gen_table_name=TEST_TABLE_NAME,
        aws_region=TEST_REGION,
        jwt_secret=TEST_JWT_SECRET,
        files_bucket_name=TEST_BUCKET_NAME,
        public_files_url=TEST_PUBLIC_FILES_URL,
        default_restaurant_image=TEST_DEFAULT_RESTAURANT_IMAGE,
        cors_allow_origin='https://test-domain.com',
        log_level='DEBUG'
    )


@pytest.fixture
def app_context(aws_mock, app_settings) -> AppContext:
    return AppContext.from_settings(app_settings)


@pytest.fixture
def chalice_gateway(app_context) -> LocalGateway:
    app = create_app(app_context)
    config = Config.create(chalice_stage='test', app_name=app.app_name)
    log_message(f'chalice_gateway ::: table={app_context.settings.gen_table_name}')
    yield LocalGateway(app, config)
