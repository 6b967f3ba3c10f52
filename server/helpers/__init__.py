from .DateTimeSerializer import DateTimeSerializerVisitor
from .CreditKeyGenerator import generate_event_credit_key, generate_submission_credit_key
from .Pagination import get_pagination, create_pagination_response
from .Responses import success_response, error_response

__all__ = [
    'DateTimeSerializerVisitor',
    'generate_event_credit_key',
    'generate_submission_credit_key',
    'get_pagination',
    'create_pagination_response',
    'success_response',
    'error_response'
]
