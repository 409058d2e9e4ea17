from flask import jsonify


def jwt_manager_configuration(jwt):
    '''
    Error responses for tokens issued by the member auth service:
    1. JWT Expired token
    2. JWT Invalid token
    3. JWT Missing token
    '''

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return (
            jsonify(
                {
                    "code": "401",
                    "status": "Unauthorized",
                    "message": "The token has expired.",
                    "error": "token_expired"
                }
            ),
            401,
        )

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return (
            jsonify(
                {
                    "code": "401",
                    "status": "Unauthorized",
                    "message": "Signature verification failed.",
                    "error": "invalid_token"
                }
            ),
            401,
        )

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return (
            jsonify(
                {
                    "code": "401",
                    "status": "Unauthorized",
                    "description": "Request does not contain an access token.",
                    "error": "authorization_required",
                }
            ),
            401,
        )

    return jwt
