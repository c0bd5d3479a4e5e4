import pytest


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    home = tmp_path / "wtf-home"
    monkeypatch.setenv("SHELLWTF_HOME", str(home))
    monkeypatch.setenv("SHELL", "/bin/bash")
    monkeypatch.delenv("WTF_FILE", raising=False)
    return home


@pytest.fixture
def write_config(isolated_env):
    def _write(text: str):
        isolated_env.mkdir(parents=True, exist_ok=True)
        path = isolated_env / "config.toml"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def reset_logging():
    import logging

    yield
    logger = logging.getLogger("shellwtf")
    logger.handlers[:] = []
    logger.setLevel(logging.NOTSET)
