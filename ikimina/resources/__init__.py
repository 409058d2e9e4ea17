# Contribution payment resources
from .payments.payment_resource import payment_blp
from .payments.payment_webhook_resource import payment_webhook_blp
