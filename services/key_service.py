# services/key_service.py
import secrets
import string

SERIAL_ALPHABET = string.ascii_lowercase + string.digits
DEFAULT_PREFIX = 'scriptxserial_'
DEFAULT_SEGMENT_LENGTH = 13


def generate_segment(length=DEFAULT_SEGMENT_LENGTH):
    return ''.join(secrets.choice(SERIAL_ALPHABET) for _ in range(length))


def generate_serial(prefix=DEFAULT_PREFIX, segment_length=DEFAULT_SEGMENT_LENGTH):
    """
    Prefix followed by two independently drawn random segments.
    Uniqueness is still enforced by the generatedkeys.serial constraint.
    """
    return prefix + generate_segment(segment_length) + generate_segment(segment_length)


def serial_generator(prefix=DEFAULT_PREFIX, segment_length=DEFAULT_SEGMENT_LENGTH):
    """Zero-argument generator callable bound to the given settings."""
    def generate():
        return generate_serial(prefix, segment_length)
    return generate
