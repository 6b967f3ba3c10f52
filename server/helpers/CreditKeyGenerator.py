import hashlib
import base64


def _short_hash(value: str) -> str:
    hash_bytes = hashlib.sha256(value.encode()).digest()
    return base64.urlsafe_b64encode(hash_bytes[:12]).decode('utf-8').rstrip('=')


def generate_event_credit_key(event_id: str, volunteer_id: str) -> str:
    """Idempotency key for the completion credit of one volunteer on one event"""
    return "evt-" + _short_hash(f"{event_id}:{volunteer_id}")


def generate_submission_credit_key(submission_id: str) -> str:
    """Idempotency key for the credit of an approved work submission"""
    return "sub-" + _short_hash(submission_id)
