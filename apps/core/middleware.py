# apps/core/middleware.py

from .exceptions import Unauthenticated
from .identity import get_identity_resolver


class BearerTokenMiddleware:
    """
    Resolve o usuário a partir do header Authorization: Bearer <token>

    Define request.principal_id (None quando não há token válido) e
    request.auth_error com o motivo da falha. Quem exige autenticação
    é o decorador api_view - este middleware nunca bloqueia a request.
    """

    keyword = 'Bearer'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.principal_id = None
        request.auth_error = None

        header = request.META.get('HTTP_AUTHORIZATION', '')
        if header:
            parts = header.split()
            if len(parts) == 2 and parts[0] == self.keyword:
                try:
                    request.principal_id = get_identity_resolver().verify(parts[1])
                except Unauthenticated as exc:
                    request.auth_error = exc
            else:
                request.auth_error = Unauthenticated('UNAUTHENTICATED', 'Header Authorization malformado')

        response = self.get_response(request)

        if request.principal_id is not None:
            response['X-Principal'] = str(request.principal_id)

        return response
