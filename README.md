# schemaguard

A library for checking a Postgres migration before it is merged. It has
three parts:

- **Shadow database** (`schemaguard.shadowdb`): start a throwaway Postgres
  container in Docker, restore a snapshot of your data into it, and tear it
  down afterwards.
- **Query-plan regressions** (`schemaguard.planregression`): capture
  plan-only `EXPLAIN (FORMAT JSON)` plans for a set of important queries
  before and after the migration, then compare them. The queries are never
  executed; only their plans are read.
- **Reports** (`schemaguard.report`): a report model with a
  red/yellow/green verdict, rendered as plain text, JSON or a
  PR-comment-sized Markdown document.

## Installation

```
pip install schemaguard
```

Docker must be installed and its daemon running to use the shadow database.

## Configuration file

The queries to watch are listed in a YAML file, usually `schemaguard.yaml`:

```yaml
queries:
  - id: orders_by_customer
    sql: SELECT * FROM orders WHERE customer_id = 1
  - id: status_count
    sql: SELECT status, count(*) FROM orders GROUP BY status

thresholds:            # optional; every field may be left out
  caution_cost_ratio: 2.0
  stop_cost_ratio: 5.0
  min_cost_delta: 100
  caution_rows_ratio: 10.0
  stop_rows_ratio: 100.0
  min_rows_delta: 1000
```

Every query needs a non-empty, unique `id` and a non-empty `sql`. Ratios
must be at least 1.0, minimum deltas may not be negative, and each stop
ratio must be at least its caution ratio once defaults are filled in.

```python
from schemaguard.planregression.config import load_config

config = load_config("schemaguard.yaml")
thresholds = config.effective_thresholds()
```

`load_config("")` (or `None`) returns `None`, which turns plan analysis off;
`effective_thresholds(None)` then gives the defaults from
`default_thresholds()`. An unreadable file, malformed YAML or a schema
violation raises `ConfigError` (a `ValueError`).

## Shadow database

```python
from schemaguard.shadowdb.availability import check_docker_available
from schemaguard.shadowdb.runner import Runner

check_docker_available(timeout=10)   # raises DockerUnavailableError

with Runner("/abs/path/to/snapshot.dump") as runner:
    result = runner.restore_snapshot()
    print(result.format, result.duration)
    print(runner.conn_string)
```

`Runner` needs an absolute path to an existing snapshot file; it is mounted
read-only into a `postgres:16-alpine` container with a random name
(`runner.name`). `start()` waits up to 45 seconds for `pg_isready`, and tears
the container down again if it fails. `stop()` is safe to call more than
once. The snapshot format is chosen by its extension: `.sql` is loaded with
`psql`, `.dump` and `.pgdump` with `pg_restore` (custom format), and `.tar`
with `pg_restore -F t`. Any other extension, and any failed docker call,
raises `ShadowDBError`. The database is reached without a password
(`postgres://postgres@127.0.0.1:<port>/postgres?sslmode=disable`).

## Comparing plans

`capture(conn, queries)` runs `EXPLAIN (FORMAT JSON)` for each query over a
DB-API connection and returns one `CaptureResult` per query, in order; a
query that cannot be explained is recorded in `result.error` rather than
raised.

```python
from schemaguard.planregression.capture import capture
from schemaguard.planregression.analyze import analyze

baseline = capture(conn, config.queries)
# ... run the migration ...
post = capture(conn, config.queries)

findings = analyze(baseline, post, thresholds)
for finding in findings:
    print(finding.severity, finding.kind.name, finding.query_id, finding.reason)
```

Findings (`FindingKind`) report cost increases, estimated-row increases,
scan downgrades, new sequential scans, queries broken by the migration
(always `Severity.STOP`), and queries that were already broken before it ran
(`Severity.INFO`). They are sorted by severity, then query id, then kind.
Plans can also be read directly with `parse_explain_json` and inspected
through `PlanNode` and `scans_by_relation` in `schemaguard.planregression.plan`.

## Reports

A `Report` is put together by the caller from `Finding`s and a `Footer`:

```python
from datetime import timedelta

from schemaguard.report.types import Finding, Footer, Group, Report, Severity, Verdict
from schemaguard.report.text import format_text
from schemaguard.report.json_format import format_json
from schemaguard.report.markdown import format_markdown

report = Report(
    verdict=Verdict.YELLOW,
    summary="Migration ran but raised 1 caution-level finding; review before merging.",
    findings=[
        Finding(
            group=Group.QUERY_PLAN,
            severity=Severity.CAUTION,
            kind="cost_increase",
            object="orders_by_customer",
            impact="cost 120 → 300",
            reason="estimated cost rose 2.5x (120 → 300)",
        )
    ],
    footer=Footer(tool_version="0.1.0", run_duration=timedelta(seconds=1.5)),
)

print(format_text(report))
print(format_json(report).decode("utf-8"))
print(format_markdown(report, 55000))
```

Groups are shown in a fixed order (migration execution, lock risk, query
plan regressions) and empty groups are left out. `Verdict.exit_code()` maps
green, yellow and red to 0, 1 and 2. `format_json` returns UTF-8 bytes with a
`schemaVersion` field and durations in whole milliseconds. `format_markdown`
drops the last findings and adds a truncation notice when the output would
exceed the budget in bytes (default 55000).

## What this package does not do

- There is no command-line program; everything is called from Python.
- It does not run migrations, and it does not analyse locks. `Group.LOCK_RISK`
  exists as a report category, but findings for it must come from elsewhere.
- It does not work out a verdict or summary from findings, nor convert
  plan-regression findings into report findings; the caller fills in
  `Report` itself.
- It needs Docker for the shadow database; an external Postgres server is
  not supported.