"""Tests for the reference data seeder."""

from unittest.mock import MagicMock, patch

from src import seed


def _statements(session: MagicMock) -> list[str]:
    return [str(call.args[0]) for call in session.execute.call_args_list]


def test_seed_couriers_is_guarded_per_type():
    session = MagicMock()

    seed.seed_couriers(session)

    assert session.execute.call_count == len(seed.COURIERS)
    assert all("WHERE NOT EXISTS" in sql for sql in _statements(session))
    params = [call.args[1] for call in session.execute.call_args_list]
    manual = {p["courier_type"] for p in params if p["is_manual_dispatch"]}
    assert manual == {"TCS_OVERLAND", "SELF_DELIVERY"}


def test_seed_products_casts_price():
    session = MagicMock()

    seed.seed_products(session)

    assert session.execute.call_count == len(seed.PRODUCTS)
    assert "CAST(:unit_price AS NUMERIC)" in _statements(session)[0]


@patch("src.seed.Session")
def test_main_runs_in_one_transaction(mock_session_cls):
    session = mock_session_cls.return_value.__enter__.return_value

    seed.main()

    session.begin.assert_called_once()
    expected = len(seed.COURIERS) + len(seed.VENDORS) + len(seed.PRODUCTS)
    assert session.execute.call_count == expected
