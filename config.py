"""Settings loader.

Values are merged from, highest precedence first: command-line flags,
environment variables, the ``tfsinfo2html`` config file, built-in defaults.
The config file is mandatory; a run never proceeds on defaults alone.
"""

import argparse
import json
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from models import Settings, TfsInfoError

CONFIG_NAME = "tfsinfo2html"
CONFIG_EXTENSIONS = ("json", "toml", "yaml", "yml")

DEFAULTS: Dict[str, str] = {
    "tfsrequest.serviceurl": "",
    "tfsrequest.tfsurl": "",
    "tfsrequest.projecturl": "",
    "tfsrequest.user": "",
    "tfsrequest.password": "",
    "tfsrequest.startdate": "",
    "tfsrequest.enddate": "",
    "savetofile": "changesets.html",
    "templatefile": "",
}

# config key -> Settings attribute
SETTINGS_FIELDS: Dict[str, str] = {
    "tfsrequest.serviceurl": "service_url",
    "tfsrequest.tfsurl": "tfs_url",
    "tfsrequest.projecturl": "project_url",
    "tfsrequest.user": "user",
    "tfsrequest.password": "password",
    "tfsrequest.startdate": "start_date",
    "tfsrequest.enddate": "end_date",
    "savetofile": "save_to_file",
    "templatefile": "template_file",
}


class ConfigError(TfsInfoError):
    pass


def env_var_name(key: str) -> str:
    return key.upper().replace(".", "_")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tfsinfo2html",
        description="Fetch TFS changesets from a reporting service and write their work items as an HTML list.",
    )
    parser.add_argument("--config", metavar="PATH", help="Config file to use instead of searching $HOME and the working directory")
    parser.add_argument("--service-url", dest="tfsrequest.serviceurl", help="Reporting service endpoint")
    parser.add_argument("--tfs-url", dest="tfsrequest.tfsurl", help="TFS collection URL")
    parser.add_argument("--project-url", dest="tfsrequest.projecturl", help="Team project URL")
    parser.add_argument("--user", dest="tfsrequest.user", help="TFS user name")
    parser.add_argument("--password", dest="tfsrequest.password", help="TFS password")
    parser.add_argument("--start-date", dest="tfsrequest.startdate", help="Start of the changeset date range")
    parser.add_argument("--end-date", dest="tfsrequest.enddate", help="End of the changeset date range")
    parser.add_argument("-o", "--save-to-file", dest="savetofile", help="Output file (default: changesets.html)")
    parser.add_argument("--template-file", dest="templatefile", help="Jinja2 template to render instead of the built-in list")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into lower-cased dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{str(key).lower()}"
        if isinstance(value, Mapping):
            flat.update(flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def default_search_paths() -> List[Path]:
    return [Path.home(), Path.cwd()]


def find_config_file(search_paths: Sequence[Path]) -> Optional[Path]:
    for directory in search_paths:
        for ext in CONFIG_EXTENSIONS:
            candidate = Path(directory) / f"{CONFIG_NAME}.{ext}"
            if candidate.is_file():
                return candidate
    return None


def read_config_file(path: Path) -> Dict[str, Any]:
    ext = path.suffix.lstrip(".").lower()
    try:
        if ext == "toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            with open(path, "r", encoding="utf-8") as f:
                if ext == "json":
                    data = json.load(f)
                elif ext in ("yaml", "yml"):
                    data = yaml.safe_load(f)
                else:
                    raise ConfigError(f"Unsupported config file type: {path}")
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"There was a problem with your config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"There was a problem with your config file {path}: top level must be a mapping")
    return flatten(data)


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def load_settings(
    args: Optional[argparse.Namespace] = None,
    environ: Optional[Mapping[str, str]] = None,
    search_paths: Optional[Sequence[Path]] = None,
) -> Settings:
    """Build the Settings view for one run.

    ``args`` is the parsed command line (see build_arg_parser); flags left
    unset fall through to the environment, then the config file.

    Raises ConfigError when no config file can be found or read.
    """
    logging.info("Initializing configuration...")
    environ = os.environ if environ is None else environ
    if args is None:
        args = build_arg_parser().parse_args([])
    args = vars(args)

    if args.get("config"):
        config_path: Optional[Path] = Path(args["config"])
    else:
        paths = default_search_paths() if search_paths is None else search_paths
        config_path = find_config_file(paths)
        if config_path is None:
            searched = ", ".join(str(p) for p in paths)
            raise ConfigError(
                f"There was a problem with your config file: no {CONFIG_NAME}.{{{','.join(CONFIG_EXTENSIONS)}}} found in {searched}"
            )

    file_values = read_config_file(config_path)
    logging.info(f"Using config file: {config_path}")

    merged: Dict[str, str] = {}
    for key, default in DEFAULTS.items():
        value = default
        if key in file_values:
            value = _as_str(file_values[key])
        env_name = env_var_name(key)
        # Set-but-empty variables do not override.
        if environ.get(env_name):
            value = environ[env_name]
        if args.get(key) is not None:
            value = args[key]
        merged[key] = value

    settings = Settings(**{attr: merged[key] for key, attr in SETTINGS_FIELDS.items()})
    logging.debug(f"Loaded settings: {settings}")
    return settings
