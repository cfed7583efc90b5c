from datetime import datetime
from pathlib import Path

from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..analyzer import SelectionResult
from ..models import Route

TEMPLATES_DIR = Path(__file__).resolve().parents[2] / 'templates'


def render_selection_html(result: SelectionResult, route: Route, generated_at: datetime | None = None) -> str:
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=select_autoescape(['html', 'xml']))
    tpl = env.get_template('roundtrip.html.j2')
    rendered = tpl.render(
        route=f"{route.origin.name} → {route.destination.name}",
        trip=result.roundtrip,
        message=result.message,
        generated_at=(generated_at or datetime.now()).strftime("%d.%m.%Y %H:%M"),
    )
    return BeautifulSoup(rendered, 'lxml').prettify()


def format_selection_text(result: SelectionResult) -> str:
    """One-line console summary of a selection result."""
    if not result.ok:
        return f"Selection failed: {result.error}"
    if result.roundtrip is None:
        return "No matching round-trips."
    trip = result.roundtrip
    start, back = trip.originating_ticket, trip.returning_ticket
    summary = (
        f"{trip.total_cost} ₽: {start.train} {start.departure:%d.%m %H:%M} ({start.car_type}, {start.cost} ₽)"
        f" / {back.train} {back.departure:%d.%m %H:%M} ({back.car_type}, {back.cost} ₽)"
    )
    return f"{result.message}\n{summary}" if result.message else summary
