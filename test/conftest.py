import os

# boto3 must never reach real AWS from the tests
os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
os.environ['AWS_SECURITY_TOKEN'] = 'testing'
os.environ['AWS_SESSION_TOKEN'] = 'testing'
os.environ['AWS_DEFAULT_REGION'] = 'eu-central-1'
os.environ.pop('ENDPOINT_URL', None)
os.environ['JWT_SECRET'] = 'test-jwt-secret'

from test.utils.fixtures import aws_mock, app_settings, app_context, chalice_gateway  # noqa: E402,F401
