import allure
from click.testing import CliRunner

from news_curator import __version__
from news_curator.main import news_curator

pytestmark = [
    allure.epic("Operator CLI"),
    allure.feature("Version"),
]


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(news_curator, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
