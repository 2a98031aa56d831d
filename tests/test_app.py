import os

from layette_stock import performance_logger
from layette_stock.extensions import db
from layette_stock.main import create_app
from layette_stock.models import Client, Product


def test_seed_demo_is_idempotent(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['seed-demo'])
    assert result.exit_code == 0, result.output
    assert '3 productos creados' in result.output

    result = runner.invoke(args=['seed-demo', '--no-client'])
    assert '0 productos creados' in result.output

    names = sorted(p.name for p in db.session.query(Product))
    assert names == ['Body Rose Premium', 'Bonnet Bleu Ciel', 'Pyjama Étoiles']
    assert db.session.query(Client).count() == 1


def test_init_db(app):
    result = app.test_cli_runner().invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'inicializada' in result.output


def test_profiling_writes_performance_log(tmp_path):
    logs_dir = tmp_path / 'logs'
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'ENABLE_PROFILING': True,
        'LOGS_DIR': str(logs_dir),
    })
    with app.app_context():
        db.create_all()
        r = app.test_client().get('/api/admin/orders/benefits')
        assert r.status_code == 200

    performance_log = logs_dir / 'performance.log'
    assert performance_log.exists()
    assert 'Ver beneficios por pedido' in performance_log.read_text(encoding='utf-8')


def test_slow_service_calls_go_to_slow_functions_log(tmp_path, monkeypatch):
    monkeypatch.setattr(performance_logger, 'THRESHOLD_WARNING', performance_logger.THRESHOLD_WARNING)
    monkeypatch.setattr(performance_logger, 'THRESHOLD_CRITICAL', performance_logger.THRESHOLD_CRITICAL)
    logs_dir = tmp_path / 'logs'
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'ENABLE_PROFILING': True,
        'LOGS_DIR': str(logs_dir),
        'SLOW_REQUEST_MS': 0,
        'CRITICAL_REQUEST_MS': 0,
    })
    with app.app_context():
        db.create_all()
        r = app.test_client().post('/api/admin/orders', json={
            'clientId': 'c1', 'status': 'en_attente',
            'lines': [{'productId': 'ghost', 'quantity': 1, 'unitPrice': 10}],
        })
        assert r.status_code == 500

    slow_log = (logs_dir / 'slow_functions.log').read_text(encoding='utf-8')
    assert 'Crear pedido' in slow_log
    assert 'CRÍTICA' in slow_log


def test_config_overrides(app):
    assert app.config['SQLALCHEMY_DATABASE_URI'] == 'sqlite://'
    assert app.config['LOW_STOCK_THRESHOLD'] == 10
    assert 'layette_container' in app.extensions
    assert os.path.basename(app.config['LOGS_DIR']) == 'logs'
