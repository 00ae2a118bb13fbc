# routes/api_routes.py
import logging

from flask import Blueprint, jsonify, current_app, g

from services.registration_service import submit_registration
from services.serial_service import serial_exists, save_serial
from utils.decorators import require_json_fields
from utils.errors import ServiceUnavailable, StorageError
from utils.helpers import serialize_record

logger = logging.getLogger(__name__)

api_bp = Blueprint('api_bp', __name__)


def _database():
    return current_app.extensions['database']


def _coordinator():
    return current_app.extensions['issuance']


@api_bp.route('/api/validate-users', methods=['POST'])
@require_json_fields(
    'robloxUsername', 'discordUsername', 'reason',
    labels={'robloxUsername': 'roblox', 'discordUsername': 'discord'}
)
def validate_users():
    """
    Register a Roblox/Discord handle pair.
    Expected JSON: { "robloxUsername": "...", "discordUsername": "...", "reason": "..." }
    """
    data = g.payload
    logger.info("Received user validation request for %r", data['robloxUsername'])

    registration = submit_registration(
        _database(),
        data['robloxUsername'],
        data['discordUsername'],
        data['reason']
    )

    return jsonify({
        'success': True,
        'data': serialize_record(registration),
        'validation': {
            'roblox': True,
            'discord': True
        }
    })


@api_bp.route('/health', methods=['GET'])
def health():
    logger.debug("Health check requested")
    try:
        now = _database().ping()
    except StorageError as e:
        logger.error("Health check failed: %s", e)
        return jsonify({
            'status': 'error',
            'database': 'disconnected',
            'error': ServiceUnavailable.public_message
        }), ServiceUnavailable.status_code

    return jsonify({
        'status': 'ok',
        'database': 'connected',
        'timestamp': now.isoformat()
    })


@api_bp.route('/api/check-serial', methods=['POST'])
@require_json_fields('serial', message='Serial key is required')
def check_serial():
    exists = serial_exists(_database(), g.payload['serial'])
    logger.info("Serial key check completed (exists=%s)", exists)
    return jsonify({'exists': exists})


@api_bp.route('/api/save-serial', methods=['POST'])
@require_json_fields('serial', message='Serial key is required')
def save_serial_route():
    key = save_serial(_database(), g.payload['serial'])
    return jsonify({'success': True, 'data': serialize_record(key)})


@api_bp.route('/api/validate-download', methods=['POST'])
@require_json_fields('serial', message='Serial key is required')
def validate_download():
    valid = serial_exists(_database(), g.payload['serial'])
    logger.info("Download validation completed (valid=%s)", valid)
    return jsonify({'valid': valid})


@api_bp.route('/api/generate-serial', methods=['POST'])
@require_json_fields('robloxUsername', message='Roblox username is required')
def generate_serial_route():
    """
    Issue the serial key for a registration after payment.
    Returns the existing key (created=false) when one was already issued.
    """
    roblox_username = g.payload['robloxUsername']
    logger.info("Received serial key generation request for %r", roblox_username)

    key, created = _coordinator().issue_serial_for(roblox_username)

    return jsonify({
        'success': True,
        'serialKey': key['serial'],
        'created': created,
        'data': serialize_record(key)
    })
