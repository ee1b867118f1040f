from typer.testing import CliRunner

from app import create_app
from scripts.create_admin import cli

runner = CliRunner()


def test_creates_admin(tmp_path, monkeypatch):
    data_dir = str(tmp_path / 'data')
    monkeypatch.setenv('DATA_DIR', data_dir)
    result = runner.invoke(cli, ['Root', 'Root@Example.com', 's3cret!'])
    assert result.exit_code == 0, result.output
    assert 'Admin created: root@example.com' in result.output

    app = create_app({'DATA_DIR': data_dir, 'SEED_DEFAULT_ADMIN': False})
    with app.app_context():
        store = app.extensions['record_store']
        user = store.find_user_by_email('root@example.com')
        assert user.is_admin
        # the default admin is not seeded by the bootstrap script
        assert store.count_admins() == 1


def test_duplicate_email_exits_non_zero(tmp_path, monkeypatch):
    monkeypatch.setenv('DATA_DIR', str(tmp_path / 'data'))
    assert runner.invoke(cli, ['Root', 'root@example.com', 'pw']).exit_code == 0
    result = runner.invoke(cli, ['Root', 'ROOT@example.com', 'pw'])
    assert result.exit_code == 1
    assert 'Email already registered.' in result.output


def test_missing_arguments_exit_non_zero(tmp_path, monkeypatch):
    monkeypatch.setenv('DATA_DIR', str(tmp_path / 'data'))
    result = runner.invoke(cli, ['Root', 'root@example.com'])
    assert result.exit_code != 0
