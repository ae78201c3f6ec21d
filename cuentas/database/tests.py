"""
Tests de la sesión por request (get_db)
"""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from cuentas.common.exceptions import NotFoundError
from cuentas.database.database import get_db


class TestGetDb:

    def test_domain_error_rolls_back_without_error_log(self, caplog):
        session = get_db()
        next(session)

        with caplog.at_level(logging.ERROR, logger="cuentas.database.database"):
            with pytest.raises(NotFoundError):
                session.throw(NotFoundError("Cliente no encontrado", field="client_id"))

        assert "Database error" not in caplog.text

    def test_database_error_is_logged(self, caplog):
        session = get_db()
        next(session)

        with caplog.at_level(logging.ERROR, logger="cuentas.database.database"):
            with pytest.raises(OperationalError):
                session.throw(OperationalError("SELECT 1", {}, Exception("connection lost")))

        assert "Database error" in caplog.text
