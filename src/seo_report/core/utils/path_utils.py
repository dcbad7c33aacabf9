# src/seo_report/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important project paths.
    """

    @staticmethod
    def get_shell_package_root() -> Path:
        """Returns the directory of the installed `seo_report` package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_shell_package_root() / "settings.json"

    @staticmethod
    def get_project_root() -> Path:
        """
        Returns the absolute path of the project root.
        Searches upwards for a directory containing 'src' and 'pyproject.toml'.
        """
        current_path = Path(__file__).resolve().parent
        while current_path != current_path.parent:
            src_dir = current_path / "src"
            pyproject_toml = current_path / "pyproject.toml"
            if src_dir.is_dir() and pyproject_toml.is_file():
                return current_path
            current_path = current_path.parent
        raise FileNotFoundError(
            "Could not find the project root. Search for a directory containing 'src' and 'pyproject.toml'.")

    @staticmethod
    def get_compose_file(configured: str = "") -> Path:
        """
        Resolves the docker-compose file for the render service.
        A configured path wins; otherwise 'docker/docker-compose.yml' under the project root.
        """
        if configured:
            return Path(configured).expanduser().resolve()
        return PathUtils.get_project_root() / "docker" / "docker-compose.yml"
