# services/registration_service.py
import logging

from database.operations import create_registration
from services.validators import validate_roblox_username, validate_discord_username
from utils.errors import BadRequest

logger = logging.getLogger(__name__)


def submit_registration(db, roblox_username, discord_username, reason):
    """Validate both handles, then persist the registration and return it."""
    roblox_valid = validate_roblox_username(roblox_username)
    discord_valid = validate_discord_username(discord_username)

    if not roblox_valid or not discord_valid:
        logger.warning("Invalid usernames (roblox_valid=%s, discord_valid=%s)", roblox_valid, discord_valid)
        raise BadRequest('Invalid usernames', details={
            'roblox': not roblox_valid,
            'discord': not discord_valid
        })

    with db.transaction() as cur:
        registration = create_registration(cur, roblox_username, discord_username, reason)

    logger.info("Registration saved successfully (id %s)", registration['id'])
    return registration
