HTTP_STATUS_CODES = {
    "OK": 200,
    "CREATED": 201,
    "ACCEPTED": 202,
    "NO_CONTENT": 204,
    "FOUND": 302,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "VALIDATION_ERROR": 422,
    "TOO_MANY_REQUESTS": 429,
    "INTERNAL_SERVER_ERROR": 500,
    "BAD_GATEWAY": 502,
    "SERVICE_UNAVAILABLE": 503,
}

ERROR_MESSAGES = {
    "GATEWAY_ERROR": "The payment provider could not process the request. Please try again.",
}

TRANSACTION_STATUS = {
    "INITIATED": "Initiated",
    "PENDING": "Pending",
    "SUCCESSFUL": "Successful",
    "FAILED": "Failed",
    "CANCELLED": "Cancelled",
}

TRANSACTION_MESSAGES = {
    "PAYMENT_INITIATED": "Payment initiated successfully",
    "MANUAL_PAYMENT_INITIATED": "Manual payment initiated",
    "CHECK_PHONE": "Check your phone for payment prompt",
    "CALLBACK_PROCESSED": "Callback processed",
    "CALLBACK_ALREADY_PROCESSED": "Callback already processed",
    "CALLBACK_AWAITING_CONFIRMATION": "Callback received, awaiting confirmation from the provider",
}

TRANSACTION_TYPES = {
    "CONTRIBUTION": "contribution",
}
