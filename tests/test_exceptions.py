"""
Tests for the exception hierarchy
"""
import pytest

from exceptions import (
    AddonDepotException,
    AuthenticationException,
    AuthorizationException,
    ConsistencyException,
    DatabaseException,
    FileException,
    NotFoundException,
    ValidationException,
)


@pytest.mark.parametrize('exception_class,code', [
    (DatabaseException, 'DATABASE_ERROR'),
    (FileException, 'FILE_ERROR'),
    (ValidationException, 'VALIDATION_ERROR'),
    (AuthenticationException, 'AUTH_ERROR'),
    (AuthorizationException, 'FORBIDDEN'),
    (NotFoundException, 'NOT_FOUND'),
    (ConsistencyException, 'CONSISTENCY_ERROR'),
])
def test_to_dict(exception_class, code):
    error = exception_class('Something went wrong')

    assert isinstance(error, AddonDepotException)
    assert error.to_dict() == {'error': True, 'code': code, 'message': 'Something went wrong'}
    assert str(error) == 'Something went wrong'
