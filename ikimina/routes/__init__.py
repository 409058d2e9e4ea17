from ..resources import (
    payment_blp,
    payment_webhook_blp,
)

from ..controllers.contribution_page_controller import (
    get_payment_methods_page,
    get_contribution_confirmation_page,
    post_contribution_confirmation_action,
)


def register_routes(app, api):
    blueprints = [
        payment_blp,
        payment_webhook_blp,
    ]

    for blueprint in blueprints:
        api.register_blueprint(blueprint, url_prefix="/api/v1")

    # Member facing pages
    app.add_url_rule(
        '/contributions/methods',
        'get_payment_methods_page',
        get_payment_methods_page,
        methods=['GET']
    )
    app.add_url_rule(
        '/contributions/<string:transaction_id>/confirmation',
        'get_contribution_confirmation_page',
        get_contribution_confirmation_page,
        methods=['GET']
    )
    app.add_url_rule(
        '/contributions/<string:transaction_id>/actions/<string:action>',
        'post_contribution_confirmation_action',
        post_contribution_confirmation_action,
        methods=['POST']
    )

    # Root route
    @app.route('/')
    def index():
        return {"message": "Ikimina Payments Online. API is healthy and ready to receive requests."}
