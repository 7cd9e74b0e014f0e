# apps/core/identity.py

"""
Resolução de identidade via JWT

O resolver recebe toda a configuração (segredos, algoritmo, validade)
no construtor. Apenas get_identity_resolver() lê o settings.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Dict

from django.conf import settings
from jose import JWTError, jwt

from .exceptions import Unauthenticated
from .models import User

ACCESS = 'access'
REFRESH = 'refresh'


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    algorithm: str = 'HS256'
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_dict(cls, conf: Dict) -> 'TokenConfig':
        return cls(
            access_secret=conf['ACCESS_SECRET'],
            refresh_secret=conf['REFRESH_SECRET'],
            algorithm=conf.get('ALGORITHM', 'HS256'),
            access_ttl=timedelta(minutes=conf.get('ACCESS_TTL_MINUTES', 15)),
            refresh_ttl=timedelta(days=conf.get('REFRESH_TTL_DAYS', 7)),
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def as_dict(self) -> Dict:
        return {
            'accessToken': self.access_token,
            'refreshToken': self.refresh_token,
        }


class JWTIdentityResolver:
    """Emite e valida tokens de acesso/refresh"""

    def __init__(self, config: TokenConfig):
        self._config = config

    def issue(self, user_id) -> TokenPair:
        return TokenPair(
            access_token=self._encode(user_id, ACCESS, self._config.access_secret, self._config.access_ttl),
            refresh_token=self._encode(user_id, REFRESH, self._config.refresh_secret, self._config.refresh_ttl),
        )

    def verify(self, credential: str) -> int:
        """Valida um access token e devolve o id do usuário"""
        user_id = self._decode(credential, self._config.access_secret, ACCESS, 'UNAUTHENTICATED')
        if not User.objects.filter(pk=user_id, is_active=True).exists():
            raise Unauthenticated('UNAUTHENTICATED', 'Usuário do token não existe ou está inativo')
        return user_id

    def verify_refresh(self, token: str) -> int:
        return self._decode(token, self._config.refresh_secret, REFRESH, 'INVALID_REFRESH_TOKEN')

    # =================== MÉTODOS PRIVADOS ===================

    def _encode(self, user_id, token_type: str, secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'type': token_type,
            'iat': now,
            'exp': now + ttl,
            'jti': uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self._config.algorithm)

    def _decode(self, token: str, secret: str, expected_type: str, error_code: str) -> int:
        if not token:
            raise Unauthenticated(error_code, 'Token não informado')

        try:
            payload = jwt.decode(token, secret, algorithms=[self._config.algorithm])
        except JWTError as exc:
            raise Unauthenticated(error_code, f'Token inválido: {exc}')

        if payload.get('type') != expected_type:
            raise Unauthenticated(error_code, 'Tipo de token inválido')

        try:
            return int(payload['sub'])
        except (KeyError, TypeError, ValueError):
            raise Unauthenticated(error_code, 'Token sem usuário')


@lru_cache(maxsize=1)
def get_identity_resolver() -> JWTIdentityResolver:
    """Instância única construída a partir de settings.TASKTREK_JWT"""
    return JWTIdentityResolver(TokenConfig.from_dict(settings.TASKTREK_JWT))
