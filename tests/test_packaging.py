from pathlib import Path

from setuptools.config.pyprojecttoml import read_configuration

ROOT = Path(__file__).resolve().parent.parent


def test_wheel_ships_every_app_package():
    config = read_configuration(ROOT / "pyproject.toml", expand=True, ignore_option_errors=False)
    packages = set(config["tool"]["setuptools"]["packages"])
    assert {"app", "app.core", "app.db", "app.models", "app.routers", "app.utils"} <= packages
    assert not any(package.startswith("tests") for package in packages)
