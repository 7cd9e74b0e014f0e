# apps/core/auth_service.py

"""
Serviço de Autenticação - cadastro, login, tokens e recuperação de senha

O hash de senha é do Django; a emissão/validação de tokens fica com o
JWTIdentityResolver. Este serviço só orquestra as regras de conta.
"""

import logging
from typing import Dict, Optional, Tuple

from django.conf import settings
from django.contrib.auth.tokens import default_token_generator
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode

from .exceptions import Conflict, Forbidden, NotFound, Unauthenticated, ValidationError
from .identity import TokenPair, get_identity_resolver
from .models import User
from .notifier import (
    PASSWORD_RESET, PASSWORD_RESET_CONFIRMATION, WELCOME, NotificationEvent, notifier
)

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Serviço encapsulado para gerenciar contas

    Tentativas de login falhas ficam no cache (Redis em produção) e
    bloqueiam a conta temporariamente após o limite configurado.
    """

    def __init__(self, resolver=None, max_login_attempts=None, lockout_minutes=None,
                 password_reset_minutes=None):
        self._resolver = resolver
        self._max_login_attempts = max_login_attempts or getattr(settings, 'TASKTREK_LOGIN_MAX_ATTEMPTS', 5)
        self._lockout_minutes = lockout_minutes or getattr(settings, 'TASKTREK_LOGIN_LOCKOUT_MINUTES', 15)
        self._password_reset_minutes = password_reset_minutes or settings.PASSWORD_RESET_TIMEOUT // 60

    @property
    def resolver(self):
        return self._resolver or get_identity_resolver()

    def signup(self, data: Dict) -> Tuple[User, TokenPair]:
        """
        Cria conta e já devolve os tokens

        Campos obrigatórios: username, email, password
        """
        self._validar_dados_cadastro(data)

        username = data['username'].strip()
        email = data['email'].strip().lower()

        if User.objects.filter(Q(username__iexact=username) | Q(email__iexact=email)).exists():
            raise Conflict('USER_EXISTS', 'Usuário ou email já cadastrado')

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=username,
                    email=email,
                    password=data['password'],
                    name=(data.get('name') or username).strip(),
                )
        except IntegrityError:
            # Cadastro concorrente com o mesmo username/email
            raise Conflict('USER_EXISTS', 'Usuário ou email já cadastrado')

        tokens = self._emitir_tokens(user)

        notifier.notify(NotificationEvent(WELCOME, [user.email], {'name': user.name}))
        logger.info("Conta criada: user=%s", user.pk)
        return user, tokens

    def login(self, email: str, password: str) -> Tuple[User, TokenPair]:
        if not email or not password:
            raise ValidationError('VALIDATION_ERROR', 'Informe email e senha')

        chave = self._chave_tentativas(email)
        if self._conta_esta_bloqueada(chave):
            raise Forbidden('ACCOUNT_LOCKED', 'Conta temporariamente bloqueada por muitas tentativas incorretas')

        user = User.objects.filter(email__iexact=email.strip(), is_active=True).first()
        if user is None or not user.check_password(password):
            self._registrar_tentativa_falha(chave)
            raise Unauthenticated('INVALID_CREDENTIALS', 'Credenciais inválidas')

        cache.delete(chave)
        return user, self._emitir_tokens(user)

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        """Troca um refresh token válido por um novo par (rotação)"""
        user_id = self.resolver.verify_refresh(refresh_token)

        user = User.objects.filter(pk=user_id, refresh_token=refresh_token, is_active=True).first()
        if user is None:
            raise Unauthenticated('INVALID_REFRESH_TOKEN', 'Refresh token inválido')

        return self._emitir_tokens(user)

    def logout(self, refresh_token: Optional[str]) -> bool:
        """Invalida o refresh token; sempre bem-sucedido"""
        if not refresh_token:
            return False
        return User.objects.filter(refresh_token=refresh_token).update(refresh_token=None) > 0

    def forgot_password(self, email: Optional[str]) -> None:
        """
        Envia o link de recuperação

        Email desconhecido responde igual ao conhecido, para não revelar
        quais contas existem.
        """
        if not email:
            raise ValidationError('VALIDATION_ERROR', 'Informe seu email')

        user = User.objects.filter(email__iexact=email.strip(), is_active=True).first()
        if user is None:
            logger.info("Recuperação de senha para email desconhecido")
            return

        token = self._gerar_token_recuperacao(user)
        link = f"{settings.TASKTREK_FRONTEND_URL.rstrip('/')}/reset-password/{token}"
        notifier.notify(NotificationEvent(
            PASSWORD_RESET, [user.email],
            {'name': user.name, 'link': link, 'minutes': self._password_reset_minutes}
        ))

    def reset_password(self, token: str, password: Optional[str]) -> User:
        if not password:
            raise ValidationError('VALIDATION_ERROR', 'Informe a nova senha')

        user = self._decodificar_token_recuperacao(token)
        if user is None:
            raise ValidationError('INVALID_RESET_TOKEN', 'Token inválido ou expirado')

        if not self._validar_senha(password):
            raise ValidationError('VALIDATION_ERROR', 'Senha deve ter pelo menos 8 caracteres')

        user.set_password(password)
        user.refresh_token = None
        user.save(update_fields=['password', 'refresh_token', 'updated_at'])

        notifier.notify(NotificationEvent(PASSWORD_RESET_CONFIRMATION, [user.email], {'name': user.name}))
        return user

    def get_user(self, user_id) -> User:
        try:
            return User.objects.get(pk=user_id, is_active=True)
        except (User.DoesNotExist, TypeError, ValueError):
            raise NotFound('USER_NOT_FOUND', 'Usuário não encontrado')

    def update_profile(self, user_id, data: Dict) -> User:
        user = self.get_user(user_id)

        name = data.get('name')
        if name is not None:
            if not isinstance(name, str) or not name.strip():
                raise ValidationError('VALIDATION_ERROR', 'Nome inválido')
            user.name = name.strip()

        email = data.get('email')
        if email is not None:
            email = self._validar_email(email)
            if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
                raise Conflict('USER_EXISTS', 'Email já cadastrado')
            user.email = email

        user.save()
        return user

    # =================== MÉTODOS PRIVADOS (ENCAPSULADOS) ===================

    def _validar_dados_cadastro(self, dados: Dict):
        for campo in ('username', 'email', 'password'):
            valor = dados.get(campo)
            if not isinstance(valor, str) or not valor.strip():
                raise ValidationError('VALIDATION_ERROR', f'Campo {campo} é obrigatório')

        self._validar_email(dados['email'])

        if not self._validar_senha(dados['password']):
            raise ValidationError('VALIDATION_ERROR', 'Senha deve ter pelo menos 8 caracteres')

        username = dados['username'].strip()
        if ' ' in username or len(username) < 3:
            raise ValidationError(
                'VALIDATION_ERROR',
                'Nome de usuário deve ter pelo menos 3 caracteres e não conter espaços'
            )

    def _validar_email(self, email) -> str:
        if not isinstance(email, str):
            raise ValidationError('VALIDATION_ERROR', 'Email inválido')
        email = email.strip().lower()
        if '@' not in email or '.' not in email.split('@')[-1]:
            raise ValidationError('VALIDATION_ERROR', 'Email inválido')
        return email

    def _validar_senha(self, password: str) -> bool:
        return isinstance(password, str) and len(password) >= 8

    def _emitir_tokens(self, user: User) -> TokenPair:
        tokens = self.resolver.issue(user.pk)
        user.refresh_token = tokens.refresh_token
        user.save(update_fields=['refresh_token', 'updated_at'])
        return tokens

    def _chave_tentativas(self, email: str) -> str:
        return f"login_attempts:{email.strip().lower()}"

    def _conta_esta_bloqueada(self, chave: str) -> bool:
        return cache.get(chave, 0) >= self._max_login_attempts

    def _registrar_tentativa_falha(self, chave: str):
        # add só cria a chave se não existir; o prazo conta da primeira falha
        cache.add(chave, 0, timeout=self._lockout_minutes * 60)
        tentativas = cache.incr(chave)
        logger.warning("⚠️ Tentativa de login falhada (%s/%s)", tentativas, self._max_login_attempts)

    def _gerar_token_recuperacao(self, user: User) -> str:
        """uid + token do Django; o token expira em PASSWORD_RESET_TIMEOUT e morre ao trocar a senha"""
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        return f"{uid}.{default_token_generator.make_token(user)}"

    def _decodificar_token_recuperacao(self, token: str) -> Optional[User]:
        try:
            uid, token_part = token.split('.', 1)
            user_id = urlsafe_base64_decode(uid).decode()
            user = User.objects.get(pk=user_id, is_active=True)
        except (ValueError, TypeError, AttributeError, User.DoesNotExist):
            return None

        if default_token_generator.check_token(user, token_part):
            return user
        return None


# Instância global do serviço (Singleton pattern)
auth_service = AuthenticationService()
