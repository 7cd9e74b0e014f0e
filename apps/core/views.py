# apps/core/views.py

from django.db import DatabaseError
from django.http import JsonResponse
from django.utils import timezone

from .auth_service import auth_service
from .models import User
from .utils import api_view, ok, parse_body, user_to_dict


# =================== AUTENTICAÇÃO ===================

@api_view(['POST'], auth=False)
def signup_view(request):
    """Cadastro - devolve usuário e tokens"""
    user, tokens = auth_service.signup(parse_body(request))
    return ok(
        status=201,
        message='Usuário cadastrado com sucesso',
        user=user_to_dict(user),
        **tokens.as_dict()
    )


@api_view(['POST'], auth=False)
def login_view(request):
    data = parse_body(request)
    user, tokens = auth_service.login(data.get('email'), data.get('password'))
    return ok(message='Login realizado com sucesso', user=user_to_dict(user), **tokens.as_dict())


@api_view(['POST'], auth=False)
def refresh_token_view(request):
    tokens = auth_service.refresh(parse_body(request).get('refreshToken'))
    return ok(**tokens.as_dict())


@api_view(['POST'])
def logout_view(request):
    auth_service.logout(parse_body(request).get('refreshToken'))
    return ok(message='Logout realizado')


@api_view(['POST'], auth=False)
def forgot_password_view(request):
    auth_service.forgot_password(parse_body(request).get('email'))
    return ok(message='Se o email existir, você receberá instruções de recuperação')


@api_view(['POST'], auth=False)
def reset_password_view(request, token):
    auth_service.reset_password(token, parse_body(request).get('password'))
    return ok(message='Senha redefinida com sucesso!')


@api_view(['GET'])
def me_view(request):
    return ok(user_to_dict(auth_service.get_user(request.principal_id)))


# =================== USUÁRIOS ===================

@api_view(['GET', 'PUT'])
def profile_view(request):
    if request.method == 'PUT':
        user = auth_service.update_profile(request.principal_id, parse_body(request))
    else:
        user = auth_service.get_user(request.principal_id)
    return ok(user_to_dict(user))


@api_view(['GET'])
def user_detail_view(request, user_id):
    return ok(user_to_dict(auth_service.get_user(user_id)))


# =================== MONITORAMENTO ===================

def health_check(request):
    """
    Health check para monitoramento
    """
    try:
        User.objects.exists()
    except DatabaseError as e:
        return JsonResponse({
            'status': 'unhealthy',
            'database': 'error',
            'error': str(e),
            'timestamp': timezone.now().isoformat(),
        }, status=503)

    return JsonResponse({
        'status': 'healthy',
        'database': 'ok',
        'timestamp': timezone.now().isoformat(),
    })
