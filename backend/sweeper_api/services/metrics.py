"""Метрики хранилища проектов (prometheus_client).

HTTP-метрики отдаёт Instrumentator в main.py, тут только счётчики
аллокаций и очистки, они попадают в тот же /metrics через общий REGISTRY.
"""

from prometheus_client import Counter, Gauge

PROJECTS_ALLOCATED = Counter(
    "targetsweeper_projects_allocated_total",
    "Project directories allocated",
)

PROJECTS_EVICTED = Counter(
    "targetsweeper_projects_evicted_total",
    "Project directories removed by the retention pass",
    ["reason"],
)

RETENTION_FAILURES = Counter(
    "targetsweeper_retention_failures_total",
    "Retention passes aborted by an error",
)

PROJECTS_KEPT = Gauge(
    "targetsweeper_projects_kept",
    "Project directories left after the last retention pass",
)
