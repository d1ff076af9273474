# huntrweb

The web service of a job-hunting pipeline. It serves a dashboard of scored
jobs and a JSON API for managing job sources, scraper filters, the scraping
schedule, CV uploads, CV collections, error history and logs.

Scraper and processor services share a `/data` directory with it. huntrweb
reads their output and drops trigger files for them; it never starts them.

## Installing

    pip install .

For the tests:

    pip install ".[test]"
    pytest

## Running

    huntrweb --host 0.0.0.0 --port 8080

Both options are optional; those are their defaults. The command creates the
data directories from `huntrweb.service_monitor.default_data_paths()`
(`/data/config/config.json`, `/data/jobs/raw`, `/data/jobs/scored`,
`/data/logs`, `/data/state`, ...) and serves the app with Flask's built-in
server. If no configuration file exists, the first request that needs one
writes the default configuration; the command supplies an empty one.

## Embedding

```python
from huntrweb.server import create_app
from huntrweb.service_monitor import default_data_paths

app = create_app(default_data_paths(), default_config, collections)
```

`default_config` is the dictionary written when no configuration file
exists. `collections` maps collection names (such as `cv_20260127_143000`)
to item counts; the collection routes list, select and delete entries of
this mapping. `create_app` returns a Flask application, so any WSGI server
or Flask's test client can drive it. `huntrweb.server.Server` holds the same
state and exposes the app as `Server.app`.

## API overview

| Method | Path | Purpose |
| ------ | ---- | ------- |
| GET | `/health` | liveness check |
| GET | `/` | dashboard of the latest `jobs_scored_*.json` file |
| GET | `/api/status` | activity of the scraper, processor and web services |
| POST | `/api/cv/upload` | CV upload (.docx, up to 10 MB) |
| GET | `/api/cv/status` | whether a CV and a processed profile exist |
| GET/POST | `/api/config` | full configuration |
| GET/POST | `/api/scraper-filters` | salary, location and work-type filters |
| GET/POST/PUT/DELETE | `/api/sources` | list, add, enable/disable, remove sources |
| POST | `/api/sources/test` | check that a URL answers HTTP 200 |
| POST | `/api/sources/board/toggle` | enable or disable every source in a group |
| GET | `/api/sources/stats` | `source_stats.json` from the state directory |
| GET/PUT/DELETE | `/api/collections` | CV collections and the active one |
| GET | `/api/schedule/next-run` | next scheduled scrape |
| POST | `/api/schedule` | save the daily, weekly or monthly schedule |
| GET/POST | `/api/errors` | aggregated error history |
| GET | `/api/logs/scraper`, `/api/logs/processor` | tail of service logs (`?lines=`, at most 2000) |
| POST | `/api/scraper/trigger` | request a manual scrape (30-minute cooldown) |
| GET | `/api/scraper/cooldown` | cooldown state |
| POST | `/api/data/clear` | remove raw, normalised and scored job files |

## Library modules

- `huntrweb.cooldown`: trigger file and cooldown timestamps.
- `huntrweb.scheduler`: `calculate_next_run`, `parse_time`, `trigger_scraper`.
- `huntrweb.source_manager`: source list helpers and `validate_source_url_detail`.
- `huntrweb.collection_manager`: collection names, listing and the active selection.
- `huntrweb.error_aggregator`: `ErrorAggregator` and the shared `log_error`,
  `get_recent_errors`, `get_error_summary`.
- `huntrweb.dashboard`: `format_job_data` and `generate_dashboard`.
- `huntrweb.configstore`: `load_config`, `save_config`, `load_or_create`.
- `huntrweb.service_monitor`: `check_service_status`, `DataPaths`.

## E-mail alerts

`huntrweb.notifications.notify_new_jobs(jobs, config, history_file)` mails
jobs whose score reaches `high_score_threshold` (70 if unset), once per job,
when `email_enabled` is set. Credentials come from the `HUNTR_EMAIL`,
`HUNTR_EMAIL_PASSWORD` and `HUNTR_EMAIL_RECIPIENT` environment variables;
the server is `email_config.smtp_server` and `smtp_port`
(`smtp.gmail.com:587` by default). The web service does not call it itself.

## What it does not do

- It ships no `dashboard.html`. The `/` route renders that template from
  `DataPaths.template_dir` (`/app/templates` by default) and answers
  HTTP 500 with `{"error": "Template not found"}` when it is missing.
- It has no vector store. Collections live only in the mapping handed to
  `create_app`; the `huntrweb` command starts with an empty one.
- It does not scrape, process or score jobs, and does not embed CVs.