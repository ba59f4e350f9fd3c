import logging
import os
from pathlib import Path
from typing import Dict, Iterable

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from models import ChangesetInfo, TfsInfoError

REPORT_TEMPLATE = """
{% for id, title in items %}
\t<li>TFS {{ id }} - {{ title }}</li>
{% endfor %}"""


class RenderError(TfsInfoError):
    pass


def collect_work_items(changesets: Iterable[ChangesetInfo]) -> Dict[int, str]:
    """Map work item id to title across all changesets.

    A work item referenced by several changesets appears once. If the copies
    disagree on the title, the one seen last is kept; there is no stronger
    rule than that.
    """
    report: Dict[int, str] = {}
    for changeset in changesets:
        for item in changeset.work_items:
            report[item.id] = item.title
    return report


def _load_template(template_file: str):
    if not template_file:
        return Environment(autoescape=True).from_string(REPORT_TEMPLATE)
    path = Path(template_file)
    env = Environment(
        loader=FileSystemLoader(str(path.parent)),
        autoescape=select_autoescape(default=True, default_for_string=True),
    )
    return env.get_template(path.name)


def render_report(work_items: Dict[int, str], template_file: str = "") -> str:
    # Sorted so the same input always renders the same bytes.
    items = sorted(work_items.items())
    try:
        template = _load_template(template_file)
        return template.render(items=items)
    except TemplateError as e:
        raise RenderError(f"Template error: {e}") from e
    except OSError as e:
        raise RenderError(f"Could not read template {template_file}: {e}") from e


def write_report(text: str, path: str) -> None:
    logging.info(f"Saving to file: {path}")
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise RenderError(f"Could not write {path}: {e}") from e
