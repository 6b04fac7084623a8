from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence

import networkx as nx
import pandas as pd

from resplan.errors import CyclicDependency, PlanningError, UnknownDependency
from resplan.records import Task

_TOL = 1e-9


@dataclass
class CriticalPathAnalysis:
    earliest_start: dict[str, float] = field(default_factory=dict)
    earliest_finish: dict[str, float] = field(default_factory=dict)
    latest_start: dict[str, float] = field(default_factory=dict)
    latest_finish: dict[str, float] = field(default_factory=dict)
    slack: dict[str, float] = field(default_factory=dict)
    critical_task_ids: list[str] = field(default_factory=list)
    critical_paths: list[list[str]] = field(default_factory=list)
    project_duration: float = 0.0
    order: list[str] = field(default_factory=list)

    def is_critical(self, task_id: str) -> bool:
        return task_id in self.critical_task_ids


def task_graph(tasks: Sequence[Task]) -> nx.DiGraph:
    """
    Dependency graph with an edge dependency -> dependent for every link.
    Raises UnknownDependency on a dangling reference and CyclicDependency on
    a cycle.
    """
    ids = [t.id for t in tasks]
    if len(set(ids)) != len(ids):
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        raise PlanningError(f"Duplicate task id(s): {dupes}.")

    G = nx.DiGraph()
    for t in tasks:
        if float(t.duration_days) < 0:
            raise PlanningError(f"Task {t.id!r} has a negative duration.")
        G.add_node(t.id, duration=float(t.duration_days))
    for t in tasks:
        for dep in sorted(t.dependencies):
            if dep not in G:
                raise UnknownDependency(t.id, dep)
            G.add_edge(dep, t.id)

    if not nx.is_directed_acyclic_graph(G):
        edges = nx.find_cycle(G)
        cycle = [u for u, _ in edges] + [edges[0][0]]
        raise CyclicDependency(cycle)
    return G


def _zero(x: float) -> bool:
    return abs(x) <= _TOL


def critical_path(tasks: Sequence[Task]) -> CriticalPathAnalysis:
    """
    Forward/backward pass over a task DAG.

    earliest_start is the latest earliest_finish among dependencies (0 for
    sources); latest_finish is the earliest latest_start among dependents
    (the project end for sinks). Tasks with zero slack are critical, and every
    chain of critical tasks linked by tight edges from a source to a sink is
    returned in ``critical_paths``.
    """
    G = task_graph(tasks)
    order = list(nx.lexicographical_topological_sort(G))
    dur = nx.get_node_attributes(G, "duration")

    es: dict[str, float] = {}
    ef: dict[str, float] = {}
    for n in order:
        es[n] = max((ef[p] for p in G.predecessors(n)), default=0.0)
        ef[n] = es[n] + dur[n]
    project_end = max(ef.values(), default=0.0)

    ls: dict[str, float] = {}
    lf: dict[str, float] = {}
    for n in reversed(order):
        lf[n] = min((ls[s] for s in G.successors(n)), default=project_end)
        ls[n] = lf[n] - dur[n]

    slack = {n: ls[n] - es[n] for n in order}
    critical = [n for n in order if _zero(slack[n])]
    crit_set = set(critical)

    # tight edges: both ends critical and no gap between them
    tight = nx.DiGraph()
    tight.add_nodes_from(critical)
    for u, v in G.edges:
        if u in crit_set and v in crit_set and _zero(es[v] - ef[u]):
            tight.add_edge(u, v)

    sources = [n for n in critical if G.in_degree(n) == 0]
    sinks = [n for n in critical if G.out_degree(n) == 0]
    paths: list[list[str]] = []
    for s in sources:
        for t in sinks:
            if s == t:
                paths.append([s])
                continue
            for p in nx.all_simple_paths(tight, s, t):
                paths.append(list(p))
    paths.sort(key=lambda p: (-len(p), p))

    return CriticalPathAnalysis(
        earliest_start=es,
        earliest_finish=ef,
        latest_start=ls,
        latest_finish=lf,
        slack=slack,
        critical_task_ids=critical,
        critical_paths=paths,
        project_duration=project_end,
        order=order,
    )


def schedule_frame(
    analysis: CriticalPathAnalysis, project_start: Optional[date] = None
) -> pd.DataFrame:
    """Tabular view of the passes; calendar columns when a start date is given."""
    rows = []
    for n in analysis.order:
        row = {
            "task_id": n,
            "earliest_start": analysis.earliest_start[n],
            "earliest_finish": analysis.earliest_finish[n],
            "latest_start": analysis.latest_start[n],
            "latest_finish": analysis.latest_finish[n],
            "slack": analysis.slack[n],
            "critical": analysis.is_critical(n),
        }
        if project_start is not None:
            row["start_date"] = project_start + timedelta(days=analysis.earliest_start[n])
            row["finish_date"] = project_start + timedelta(days=analysis.earliest_finish[n])
        rows.append(row)
    cols = [
        "task_id",
        "earliest_start",
        "earliest_finish",
        "latest_start",
        "latest_finish",
        "slack",
        "critical",
    ]
    if project_start is not None:
        cols += ["start_date", "finish_date"]
    return pd.DataFrame(rows, columns=cols)
