"""Daypart and time expansion of templates into instantiation candidates."""

from src.core.config import Constants
from src.core.recurrence_parser import parse_list_field
from src.domain.instance import Candidate
from src.domain.template import TaskTemplate


def resolve_dayparts(template: TaskTemplate) -> list[str]:
    """Dayparts a template covers: the list field, else the legacy singular field, else the class default."""
    if template.dayparts:
        return template.dayparts
    legacy = parse_list_field(template.daypart)
    if legacy:
        return legacy
    return [template.rule.default_daypart]


def resolve_daypart_times(template: TaskTemplate, daypart: str) -> list[str]:
    """Clock times for one daypart of a daily template.

    Falls back to the template's ``time_of_day`` and then to the global default
    time when the daypart has no times of its own.
    """
    times = template.daypart_times.get(daypart, [])
    if times:
        return times
    return [template.time_of_day or Constants.DEFAULT_DUE_TIME]


def expand(template: TaskTemplate) -> list[Candidate]:
    """Expand a template into the (daypart, time) pairs to instantiate.

    Daily templates fan each daypart out over its clock times. Weekly and monthly
    templates produce exactly one pair per daypart carrying ``time_of_day``
    verbatim; those cycles run once, so there is nothing to fan out.

    Repeated pairs collapse to one, keeping first-seen order.
    """
    rule = template.rule
    candidates: list[Candidate] = []

    for daypart in resolve_dayparts(template):
        if rule.fans_out_times:
            candidates.extend(Candidate(daypart, due_time) for due_time in resolve_daypart_times(template, daypart))
        else:
            candidates.append(Candidate(daypart, template.time_of_day))

    return list(dict.fromkeys(candidates))
