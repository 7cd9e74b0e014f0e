# apps/core/exceptions.py

"""
Taxonomia de erros do TaskTrek

Toda operação de serviço levanta uma destas exceções em caso de falha.
A camada HTTP (apps.core.utils.api_view) converte cada uma em resposta
JSON com o status correspondente.
"""

from typing import Dict, Optional


class TaskTrekError(Exception):
    """Erro base de todas as operações do núcleo"""

    status_code = 500
    default_code = 'ERROR'
    default_message = 'Erro interno do sistema'
    retryable = False

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None,
                 details: Optional[Dict] = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def as_dict(self) -> Dict:
        payload = {
            'success': False,
            'error': self.code,
            'message': self.message,
        }
        if self.details:
            payload['details'] = self.details
        if self.retryable:
            payload['retryable'] = True
        return payload

    def __str__(self):
        return f"{self.code}: {self.message}"


class Unauthenticated(TaskTrekError):
    status_code = 401
    default_code = 'UNAUTHENTICATED'
    default_message = 'Autenticação necessária'


class NotFound(TaskTrekError):
    status_code = 404
    default_code = 'NOT_FOUND'
    default_message = 'Recurso não encontrado'


class Forbidden(TaskTrekError):
    """Negação de política - code carrega o motivo (NOT_A_MEMBER, INSUFFICIENT_ROLE...)"""

    status_code = 403
    default_code = 'INSUFFICIENT_ROLE'
    default_message = 'Você não tem permissão para esta ação'


class ValidationError(TaskTrekError):
    status_code = 400
    default_code = 'VALIDATION_ERROR'
    default_message = 'Dados inválidos'


class Conflict(TaskTrekError):
    status_code = 409
    default_code = 'CONFLICT'
    default_message = 'Conflito com o estado atual'


class PartialFailure(TaskTrekError):
    """
    Operação de vários passos interrompida no meio

    details['deleted'] e details['remaining'] listam os documentos já
    removidos e os que continuam no banco, para que o cliente possa
    repetir a operação.
    """

    status_code = 500
    default_code = 'PARTIAL_DELETE'
    default_message = 'A exclusão foi interrompida antes de terminar'

    def __init__(self, deleted: Dict, remaining: Dict, code: Optional[str] = None,
                 message: Optional[str] = None):
        super().__init__(code, message, {'deleted': deleted, 'remaining': remaining})
        self.deleted = deleted
        self.remaining = remaining


class StoreUnavailable(TaskTrekError):
    """Banco não respondeu dentro do tempo da requisição"""

    status_code = 503
    default_code = 'STORE_UNAVAILABLE'
    default_message = 'Banco de dados indisponível. Tente novamente.'
    retryable = True
