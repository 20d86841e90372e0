import logging
from datetime import datetime, timezone

from flask import Blueprint, Flask, current_app, jsonify, request

from portal.context import PortalContext
from portal.ghl_sync import (
    apply_stage_change,
    diagnose_deals,
    handle_contact_webhook,
    handle_opportunity_webhook,
)

logger = logging.getLogger(__name__)

webhooks = Blueprint('webhooks', __name__, url_prefix='/webhooks')


def get_context() -> PortalContext:
    return current_app.extensions['portal_context']


def _run_opportunity_pipeline(source):
    ctx = get_context()
    return handle_opportunity_webhook(
        request.get_json(silent=True),
        request.headers,
        ctx.deal_store,
        ctx.reconciler,
        secret=current_app.config.get('GHL_WEBHOOK_SECRET'),
        address_hint_keywords=current_app.config.get('ADDRESS_HINT_KEYWORDS', ()),
        source=source,
    )


# --- GHL Webhook Routes ---
@webhooks.route('/', methods=['GET'])
def webhook_index():
    return jsonify({
        "message": "Webhook routes are active!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "availableEndpoints": [
            "GET /webhooks/",
            "GET /webhooks/test",
            "POST /webhooks/test",
            "POST /webhooks/ghl",
            "POST /webhooks/ghl-opportunity-field-change",
            "POST /webhooks/ghl-contact-update",
            "POST /webhooks/test-stage-change",
            "GET /webhooks/diagnose",
        ],
    }), 200


@webhooks.route('/ghl', methods=['POST'])
def ghl_opportunity():
    """Opportunity updates from a GHL workflow webhook."""
    result, status = _run_opportunity_pipeline('ghl')
    return jsonify(result), status


@webhooks.route('/ghl-opportunity-field-change', methods=['POST'])
def ghl_opportunity_field_change():
    """Same pipeline as /ghl, registered for GHL's field-change trigger."""
    result, status = _run_opportunity_pipeline('ghl-opportunity-field-change')
    return jsonify(result), status


@webhooks.route('/test', methods=['GET', 'POST'])
def webhook_test():
    """
    GET: liveness check for the webhook routes.
    POST: run the opportunity pipeline and echo what was received.
    """
    info = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "method": request.method,
        "path": request.path,
    }
    if request.method == 'GET':
        return jsonify({"message": "Webhook endpoint is working!", **info}), 200

    result, status = _run_opportunity_pipeline('test')
    return jsonify({**result, **info, "body": request.get_json(silent=True)}), status


@webhooks.route('/ghl-contact-update', methods=['POST'])
def ghl_contact_update():
    """Contact custom-field updates, applied to every deal of the contact."""
    ctx = get_context()
    result, status = handle_contact_webhook(
        request.get_json(silent=True),
        request.headers,
        ctx.deal_store,
        ctx.reconciler,
        secret=current_app.config.get('GHL_WEBHOOK_SECRET'),
    )
    return jsonify(result), status


@webhooks.route('/test-stage-change', methods=['POST'])
def stage_change():
    """
    Move a deal to a GHL stage by id.

    Body: {"dealId": ..., "newStageId": ..., "pipelineId": ...}
    """
    ctx = get_context()
    result, status = apply_stage_change(
        request.get_json(silent=True),
        ctx.deal_store,
        ctx.reconciler.stage_lookup,
    )
    return jsonify(result), status


@webhooks.route('/diagnose', methods=['GET'])
def diagnose():
    result, status = diagnose_deals(get_context().deal_store)
    return jsonify(result), status


def health_check():
    """Health check endpoint."""
    return jsonify({"status": "ok"}), 200


def create_app(context=None, settings=None):
    """
    Build the Flask app.

    Args:
        context: PortalContext to serve from; built from config when omitted
        settings: Overrides applied on top of the config module

    Raises:
        ValueError: if GHL_WEBHOOK_REQUIRE_SECRET is set without a GHL_WEBHOOK_SECRET
    """
    app = Flask(__name__)
    app.config.from_object('config')
    if settings:
        app.config.update(settings)

    if not app.config.get('GHL_WEBHOOK_SECRET'):
        if app.config.get('GHL_WEBHOOK_REQUIRE_SECRET'):
            raise ValueError("GHL_WEBHOOK_REQUIRE_SECRET is set but GHL_WEBHOOK_SECRET is empty")
        logger.warning("GHL_WEBHOOK_SECRET not set - webhook endpoints accept unauthenticated requests")

    if context is None:
        context = PortalContext.from_config(app.config)
    app.extensions['portal_context'] = context

    app.register_blueprint(webhooks)
    app.add_url_rule('/health', 'health', health_check, methods=['GET'])
    return app


if __name__ == '__main__':
    import config

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    try:
        app.run(host='0.0.0.0', port=config.PORT, debug=False)
    finally:
        app.extensions['portal_context'].close()
