# apps/core/utils.py

"""
Utilitários compartilhados da API JSON

- api_view: decorador que converte erros do núcleo em respostas JSON
- parse_body / campos: leitura e validação do corpo das requisições
- *_to_dict: serialização dos modelos
"""

import json
import logging
from datetime import date
from functools import wraps
from typing import Dict, Iterable, List, Optional

from django.db import OperationalError
from django.http import JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt

from .exceptions import NotFound, StoreUnavailable, TaskTrekError, Unauthenticated, ValidationError

logger = logging.getLogger(__name__)


# =================== RESPOSTAS ===================

def ok(data=None, status: int = 200, **extra) -> JsonResponse:
    """Resposta de sucesso no formato {'success': True, 'data': ...}"""
    payload = {'success': True}
    if data is not None:
        payload['data'] = data
    payload.update(extra)
    return JsonResponse(payload, status=status)


def error_response(exc: TaskTrekError) -> JsonResponse:
    return JsonResponse(exc.as_dict(), status=exc.status_code)


def api_view(methods: Iterable[str] = ('GET',), auth: bool = True):
    """
    Decorador para views da API

    - restringe os métodos HTTP aceitos
    - exige usuário autenticado (request.principal_id) quando auth=True
    - converte TaskTrekError e timeouts do banco em JSON
    """
    allowed = {method.upper() for method in methods}

    def decorator(view_func):
        @wraps(view_func)
        def wrapped_view(request, *args, **kwargs):
            if request.method not in allowed:
                response = JsonResponse({
                    'success': False,
                    'error': 'METHOD_NOT_ALLOWED',
                    'message': f'Método {request.method} não permitido'
                }, status=405)
                response['Allow'] = ', '.join(sorted(allowed))
                return response

            try:
                if auth and getattr(request, 'principal_id', None) is None:
                    raise getattr(request, 'auth_error', None) or Unauthenticated()
                return view_func(request, *args, **kwargs)

            except TaskTrekError as exc:
                if exc.status_code >= 500:
                    logger.error("%s %s -> %s %s", request.method, request.path, exc.code, exc.details)
                else:
                    logger.info("%s %s -> %s", request.method, request.path, exc.code)
                return error_response(exc)

            except OperationalError:
                logger.exception("Banco indisponível em %s %s", request.method, request.path)
                return error_response(StoreUnavailable())

        return csrf_exempt(wrapped_view)

    return decorator


# =================== LEITURA DE DADOS ===================

def parse_body(request) -> Dict:
    """Lê o corpo JSON da requisição (vazio = {})"""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (TypeError, ValueError):
        raise ValidationError('VALIDATION_ERROR', 'Corpo da requisição não é um JSON válido')
    if not isinstance(data, dict):
        raise ValidationError('VALIDATION_ERROR', 'Corpo da requisição deve ser um objeto JSON')
    return data


def clean_text(data: Dict, field: str, required: bool = False, max_length: Optional[int] = None,
               default: Optional[str] = None) -> Optional[str]:
    """Campo texto opcional/obrigatório, sem espaços nas pontas"""
    value = data.get(field)
    if value is None:
        if required:
            raise ValidationError('VALIDATION_ERROR', f'Campo {field} é obrigatório')
        return default

    if not isinstance(value, str):
        raise ValidationError('VALIDATION_ERROR', f'Campo {field} deve ser texto')

    value = value.strip()
    if required and not value:
        raise ValidationError('VALIDATION_ERROR', f'Campo {field} é obrigatório')
    if max_length and len(value) > max_length:
        raise ValidationError('VALIDATION_ERROR', f'Campo {field} excede {max_length} caracteres')
    return value


def parse_int(value, field: str, minimum: Optional[int] = None) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError('VALIDATION_ERROR', f'Campo {field} deve ser inteiro')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError('VALIDATION_ERROR', f'Campo {field} deve ser inteiro')
    if minimum is not None and number < minimum:
        raise ValidationError('VALIDATION_ERROR', f'Campo {field} deve ser >= {minimum}')
    return number


def parse_due_date(value) -> Optional[date]:
    if value in (None, ''):
        return None
    parsed = parse_date(value) if isinstance(value, str) else None
    if parsed is None:
        raise ValidationError('VALIDATION_ERROR', 'due_date deve estar no formato AAAA-MM-DD')
    return parsed


def get_or_not_found(model, pk, code: str = 'NOT_FOUND', message: Optional[str] = None):
    """model.objects.get(pk) levantando NotFound (ids inválidos também são 'não encontrado')"""
    try:
        return model.objects.get(pk=pk)
    except (model.DoesNotExist, TypeError, ValueError):
        raise NotFound(code, message or f'{model.__name__} não encontrado')


# =================== SERIALIZAÇÃO ===================

def user_to_dict(user) -> Optional[Dict]:
    if user is None:
        return None
    return {
        'id': user.pk,
        'username': user.username,
        'email': user.email,
        'name': user.name or user.username,
    }


def members_to_list(memberships) -> List[Dict]:
    return [
        {'user': user_to_dict(m.user), 'role': m.role, 'joined_at': m.joined_at}
        for m in memberships
    ]


def team_to_dict(team, members: Optional[List[Dict]] = None) -> Dict:
    data = {
        'id': team.pk,
        'name': team.name,
        'description': team.description,
        'owner': user_to_dict(team.owner),
        'created_at': team.created_at,
        'updated_at': team.updated_at,
    }
    if members is not None:
        data['members'] = members
    return data


def task_to_dict(task) -> Dict:
    return {
        'id': task.pk,
        'title': task.title,
        'description': task.description,
        'column': task.column_id,
        'completed': task.completed,
        'completed_at': task.completed_at,
        'status': task.status,
        'assignee': task.assignee_id,
        'priority': task.priority,
        'position': task.position,
        'due_date': task.due_date,
        'overdue': task.is_overdue(),
        'created_by': task.created_by_id,
        'created_at': task.created_at,
        'updated_at': task.updated_at,
    }


def column_to_dict(column, tasks=None) -> Dict:
    data = {
        'id': column.pk,
        'title': column.title,
        'board': column.board_id,
        'position': column.position,
        'created_at': column.created_at,
        'updated_at': column.updated_at,
    }
    if tasks is not None:
        data['tasks'] = [task_to_dict(task) for task in tasks]
    return data


def board_to_dict(board, members: Optional[List[Dict]] = None, columns: Optional[List[Dict]] = None) -> Dict:
    data = {
        'id': board.pk,
        'title': board.title,
        'description': board.description,
        'team': board.team_id,
        'created_by': board.created_by_id,
        'created_at': board.created_at,
        'updated_at': board.updated_at,
    }
    if members is not None:
        data['members'] = members
    if columns is not None:
        data['columns'] = columns
    return data
