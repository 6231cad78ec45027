import functools
import time
from random import uniform

import boto3
from botocore.exceptions import ClientError

from chalicelib.utils import exceptions
from chalicelib.utils.boto_clients import get_aws_config_ddb
from chalicelib.utils.logger import logger, log_exception
from chalicelib.utils.settings import Settings

# For safe db operations
RETRY_EXCEPTIONS = ('ProvisionedThroughputExceededException', 'ThrottlingException')
need_return_capacity = ('put_item', 'get_item', 'update_item', 'delete_item')

MAX_RETRIES = 15
MAX_BACKOFF_SECONDS = 5


def exp_db_backoff(func):
    """
        should be used for any atomic
        get/put item in the code
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={kwargs}')
        timeout_seed = uniform(0.1, 0.99)

        if func.__name__ not in need_return_capacity:
            raise RuntimeError("This decorator only for DynamoDB methods")
        kwargs.update({'ReturnConsumedCapacity': 'TOTAL'})

        for retries in range(MAX_RETRIES):
            try:
                result = func(*args, **kwargs)
                logger.info(f'{func.__name__}:: SUCCESS')
                return result
            except ClientError as e:
                if e.response['Error']['Code'] not in RETRY_EXCEPTIONS:
                    log_exception(e, msg=f'Got exception while trying to {func.__name__}: ')
                    raise
                logger.warning(f'{func.__name__}:: throttled, retry number {retries + 1}')
                time.sleep(min(timeout_seed * 2 ** retries, MAX_BACKOFF_SECONDS))

        raise exceptions.NumberOfRetriesExceeded(
            f"MaxNumber={MAX_RETRIES} of DB retries has exceeded"
        )

    return wrapper


def is_conditional_check_failed(error: ClientError) -> bool:
    return error.response['Error']['Code'] == 'ConditionalCheckFailedException'


def get_table(settings: Settings):
    if settings.endpoint_url:
        table = boto3.resource('dynamodb', endpoint_url=settings.endpoint_url,
                               region_name=settings.aws_region).Table(settings.gen_table_name)
    else:
        table = boto3.resource('dynamodb', config=get_aws_config_ddb(settings.aws_region)).\
            Table(settings.gen_table_name)

    table.put_item = exp_db_backoff(table.put_item)
    table.get_item = exp_db_backoff(table.get_item)
    table.update_item = exp_db_backoff(table.update_item)
    table.delete_item = exp_db_backoff(table.delete_item)

    return table


def generate_update_expression(update_body: dict, allowed_attrs_to_update: list, allowed_attrs_to_delete: list):
    """
    Generate expressions to update and delete attributes.
    if a key of update_body is empty - the attribute is deleted, else - attribute is updated
    """
    expr_attr_values = {}
    set_names = {}
    remove_names = {}
    for field in allowed_attrs_to_update:
        field_value = update_body.get(field, None)
        if field_value is None:
            continue
        # if field is in update_body but is equal to empty string, list etc. - delete field
        if field_value in ['', [], {}] and field in allowed_attrs_to_delete:
            remove_names[f'#{field}'] = field
        else:
            expr_attr_values[f':{field}'] = field_value
            set_names[f'#{field}'] = field

    set_expr = f"SET {', '.join(f'{name}=:{field}' for name, field in set_names.items())}" if set_names else None
    remove_expr = f"REMOVE {', '.join(remove_names)}" if remove_names else None
    return set_expr, expr_attr_values, set_names, remove_expr, remove_names


class Store:
    """
    Handle to the general DynamoDB table.
    The boto3 table is created lazily, on the first call.
    """

    def __init__(self, settings: Settings, table=None):
        self.settings = settings
        self._table = table

    def table(self):
        if self._table is None:
            self._table = get_table(self.settings)
        return self._table

    def put_db_record(self, item: dict, condition_expression=None):
        kwargs = {'Item': item}
        if condition_expression is not None:
            kwargs['ConditionExpression'] = condition_expression
        self.table().put_item(**kwargs)

    def update_db_record(self, key: dict, update_body: dict, allowed_attrs_to_update: list,
                         allowed_attrs_to_delete: list, condition_expression=None, return_values='UPDATED_NEW'):
        set_expr, expr_attr_values, set_names, remove_expr, remove_names = generate_update_expression(
            update_body=update_body,
            allowed_attrs_to_update=allowed_attrs_to_update,
            allowed_attrs_to_delete=allowed_attrs_to_delete
        )
        update_item_dict = {"Key": key, "ReturnValues": return_values}
        if condition_expression is not None:
            update_item_dict['ConditionExpression'] = condition_expression

        set_response = None
        if set_expr:
            set_item_dict = {
                **update_item_dict,
                "UpdateExpression": set_expr,
                "ExpressionAttributeValues": expr_attr_values,
                "ExpressionAttributeNames": set_names
            }
            set_response = self.table().update_item(**set_item_dict)

        remove_response = None
        if remove_expr:
            remove_item_dict = {
                **update_item_dict,
                "UpdateExpression": remove_expr,
                "ExpressionAttributeNames": remove_names
            }
            remove_response = self.table().update_item(**remove_item_dict)

        return set_response, remove_response

    def append_to_db_list(self, key: dict, field: str, values: list):
        """
        Atomically appends values to a list attribute of an existing record
        """
        try:
            return self.table().update_item(
                Key=key,
                UpdateExpression=f'SET #{field} = list_append(if_not_exists(#{field}, :empty_list), :values)',
                ConditionExpression='attribute_exists(partkey)',
                ExpressionAttributeNames={f'#{field}': field},
                ExpressionAttributeValues={':empty_list': [], ':values': values},
                ReturnValues='UPDATED_NEW'
            )
        except ClientError as error:
            if is_conditional_check_failed(error):
                raise exceptions.RecordNotFound(f"record partkey={key['partkey']} "
                                                f"sortkey={key['sortkey']} not found")
            raise

    def get_db_item(self, partkey, sortkey):
        result = self.table().get_item(
            Key={
                'partkey': partkey,
                'sortkey': sortkey
            }
        )

        if 'Item' in result:
            return result['Item']
        else:
            logger.warning(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
            raise exceptions.RecordNotFound(f'record partkey={partkey} sortkey={sortkey} not found')

    def delete_db_record(self, key: dict):
        self.table().delete_item(Key=key)

    def query_items_paginated(self, key_condition_expression, filter_expression=None, limit=None, start_key=None):
        kwargs = {'KeyConditionExpression': key_condition_expression}
        if filter_expression is not None:
            kwargs.update({'FilterExpression': filter_expression})

        if limit:
            kwargs.update({'Limit': int(limit)})

        if start_key:
            kwargs.update({'ExclusiveStartKey': start_key})

        resp = self.table().query(**kwargs)
        return resp['Items'], resp.get('LastEvaluatedKey')

    def query_items_paged(self, key_condition_expression, filter_expression=None):
        """ Follows LastEvaluatedKey until the whole partition is read """
        all_items, last_evaluated_key = self.query_items_paginated(key_condition_expression,
                                                                   filter_expression=filter_expression)
        while last_evaluated_key is not None:
            items, last_evaluated_key = self.query_items_paginated(key_condition_expression,
                                                                   filter_expression=filter_expression,
                                                                   start_key=last_evaluated_key)
            all_items.extend(items)

        return all_items
