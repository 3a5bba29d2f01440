from nominal_roll_api.extensions import is_sqlite, normalize_db_url


def test_hosted_postgres_urls_use_psycopg2():
    assert normalize_db_url("postgres://u:p@h:5432/roll") == "postgresql+psycopg2://u:p@h:5432/roll"
    assert normalize_db_url("postgresql://u:p@h/roll") == "postgresql+psycopg2://u:p@h/roll"
    assert normalize_db_url("postgresql+psycopg2://u@h/roll") == "postgresql+psycopg2://u@h/roll"
    assert normalize_db_url("") == ""


def test_sqlite_gets_no_pool_options(app):
    assert is_sqlite(app.config["SQLALCHEMY_DATABASE_URI"])
    assert "SQLALCHEMY_ENGINE_OPTIONS" not in app.config or not app.config["SQLALCHEMY_ENGINE_OPTIONS"].get("pool_size")
