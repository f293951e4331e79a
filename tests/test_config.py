import re

import pytest

from easytelnet import DEFAULT_CONFIG, SessionConfig
from easytelnet.config import compile_prompt


def test_defaults() -> None:
    assert DEFAULT_CONFIG.port == 23
    assert DEFAULT_CONFIG.timeout == 10.0
    assert DEFAULT_CONFIG.username == ""
    assert DEFAULT_CONFIG.password == ""
    assert DEFAULT_CONFIG.verbose is False


def test_default_prompts() -> None:
    assert DEFAULT_CONFIG.username_prompt.search(b"my-switch username: ")
    assert not DEFAULT_CONFIG.username_prompt.search(b"username: ")
    assert DEFAULT_CONFIG.password_prompt.search(b"Password: ")
    assert not DEFAULT_CONFIG.password_prompt.search(b"password: ")
    assert DEFAULT_CONFIG.banner_prompt.search(b"user@host:/root# ")
    assert DEFAULT_CONFIG.banner_prompt.search(b"admin@box-1:~$ ")
    assert not DEFAULT_CONFIG.banner_prompt.search(b"user@host ")


def test_default_banner_path_accepts_punctuation_range() -> None:
    # the path class spans "/" through "_"
    assert DEFAULT_CONFIG.banner_prompt.search(b"root@nas:/mnt/a=b:c# ")
    assert DEFAULT_CONFIG.banner_prompt.search(b"pi@box:/srv/[x]^y$ ")


def test_with_overrides_returns_new_value() -> None:
    config = DEFAULT_CONFIG.with_overrides(host="192.0.2.1", port=2323, username="admin")
    assert config.address == ("192.0.2.1", 2323)
    assert config.username == "admin"
    assert DEFAULT_CONFIG.host == ""
    assert DEFAULT_CONFIG.port == 23


def test_config_is_frozen() -> None:
    with pytest.raises(AttributeError):
        DEFAULT_CONFIG.port = 2323  # type: ignore[misc]


@pytest.mark.parametrize("pattern", ["Shell>", b"Shell>", re.compile(b"Shell>")])
def test_prompt_types(pattern) -> None:
    config = SessionConfig(host="h", banner_prompt=pattern)
    assert config.banner_prompt.pattern == b"Shell>"


def test_compile_prompt_rejects_str_pattern() -> None:
    with pytest.raises(TypeError):
        compile_prompt(re.compile("Shell>"))


def test_invalid_prompt() -> None:
    with pytest.raises(re.error):
        DEFAULT_CONFIG.with_overrides(banner_prompt="(unclosed")


@pytest.mark.parametrize("port", [0, -1, 65536])
def test_invalid_port(port: int) -> None:
    with pytest.raises(ValueError):
        DEFAULT_CONFIG.with_overrides(port=port)


@pytest.mark.parametrize("timeout", [0, -5.0])
def test_invalid_timeout(timeout: float) -> None:
    with pytest.raises(ValueError):
        DEFAULT_CONFIG.with_overrides(timeout=timeout)


def test_validate_requires_host() -> None:
    with pytest.raises(ValueError):
        DEFAULT_CONFIG.validate()
    DEFAULT_CONFIG.with_overrides(host="localhost").validate()
