accounts_pk = 'accounts'
accounts_sk = '{account_id}'

account_emails_pk = 'account_emails'
account_emails_sk = '{email}'

restaurants_pk = 'restaurants'
restaurants_sk = '{restaurant_id}'

orders_pk = 'orders'
orders_sk = '{order_id}'

restaurant_owners_pk = 'restaurant_owners'
restaurant_owners_sk = '{owner_id}'
