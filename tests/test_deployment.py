import importlib.util
import os
import unittest
from pathlib import Path
from unittest import mock

GUNICORN_CONF = Path(__file__).resolve().parent.parent / "gunicorn.conf.py"


def load_gunicorn_conf():
    spec = importlib.util.spec_from_file_location("statsor_gunicorn_conf", GUNICORN_CONF)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestGunicornConf(unittest.TestCase):
    def test_defaults_to_single_worker(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            conf = load_gunicorn_conf()
        self.assertEqual(conf.workers, 1)
        self.assertEqual(conf.threads, 1)
        self.assertEqual(conf.bind, "0.0.0.0:8080")
        self.assertEqual(conf.proc_name, "statsor")
        self.assertTrue(conf.preload_app)

    def test_environment_overrides(self):
        env = {'PORT': '9000', 'STATSOR_WORKERS': '3', 'LOG_LEVEL': 'DEBUG'}
        with mock.patch.dict(os.environ, env, clear=True):
            conf = load_gunicorn_conf()
        self.assertEqual(conf.bind, "0.0.0.0:9000")
        self.assertEqual(conf.workers, 3)
        self.assertEqual(conf.loglevel, "debug")

    def test_warns_about_shared_data_directory(self):
        with mock.patch.dict(os.environ, {'STATSOR_WORKERS': '2'}, clear=True):
            conf = load_gunicorn_conf()
        server = mock.Mock()
        conf.when_ready(server)
        server.log.warning.assert_called_once()
        server.log.info.assert_called_once_with("Statsor ready on %s", "0.0.0.0:8080")


if __name__ == '__main__':
    unittest.main()
