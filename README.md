# usagebar

A library for keeping track of how much of an AI coding assistant quota has
been used and what it has cost. `usagebar` reads the local JSONL session
logs written by Claude Code and Codex and works out per-day, per-model costs
from them. It also holds rate-limit snapshots, errors and retry back-off
state for a monitoring front end to use.

## Installation

```
pip install usagebar
```

It needs Python 3.11 or later and has no third-party dependencies.

## Modules

- `usagebar.models` defines the data types `Provider` (`CLAUDE`, `CODEX`),
  `RateWindow`, `ModelWindow`, `ProviderIdentity`, `UsageSnapshot`,
  `DailyCost` and `CostSnapshot`.
  - Each type except `Provider` can be turned into a plain dict with
    `to_dict()` and built again with `from_dict()`.
  - `Provider.display_name()` and `Provider.dashboard_url()` give the label
    and the web dashboard for a provider.
  - `UsageSnapshot.max_usage()` returns the highest used fraction across all
    of its windows.
- `usagebar.retry` defines `RetryState`, an exponential back-off.
  - The delay starts at 60 seconds, doubles with each consecutive failure and
    stops at 600 seconds.
  - `record_success()` resets it.
- `usagebar.settings` defines `Settings` and its sections, and
  `SettingsError`.
  - `Settings.load(path=None)` reads the config file. When the file is
    missing it returns the defaults.
  - `Settings.from_toml()` and `Settings.from_dict()` build settings from
    text or from a table.
  - `Settings.validate()` checks the values.
  - `SettingsWatcher` holds the current settings. Its `reload()` method reads
    the file again and keeps the old settings if the new ones are invalid. On
    success it puts the new settings on every queue that `subscribe()` has
    returned.
- `usagebar.store` defines `UsageStore`, a thread-safe store that keeps the
  latest usage snapshot, cost and error for each provider.
  - `subscribe()` returns a `queue.Queue` of `StoreUpdate` events. The queue
    holds 64 events and drops the oldest when it is full.
  - `should_refresh()` enforces a cooldown between fetches.
  - `should_notify()`, `mark_notified()` and `reset_notification()` make sure
    a high-usage warning fires only once.
- `usagebar.scanner` holds the shared parts of the cost scanners:
  `LogEntry`, `TokenUsage`, `PricingSource`, the abstract `CostScanner`,
  `aggregate_entries()` and `estimate_cost()`.
- `usagebar.claude_cost` defines `ClaudeCostScanner`, which reads the Claude
  Code logs.
- `usagebar.codex_cost` defines `CodexCostScanner`, which reads the Codex
  logs.
- `usagebar.cost_store` defines `CostStore`, which runs both scanners and
  builds today's and this month's totals.

## Examples

Print today's and this month's Claude Code spend:

```python
from datetime import date

from usagebar.cost_store import CostStore
from usagebar.models import Provider

store = CostStore()
snapshots = store.scan_all(date.today())
claude = snapshots[Provider.CLAUDE]
print(f"Today: ${claude.today_cost:.2f}, this month: ${claude.monthly_cost:.2f}")
```

Get the back-off delay after two failures:

```python
from usagebar.retry import RetryState

retry = RetryState()
retry.record_failure()
retry.record_failure()
print(retry.current_delay())  # 0:02:00
```

### How costs are scanned

`CostStore` scans from 30 days before the first day of the month up to
today. A provider's snapshot covers only the current month:

- `today_cost` is the total for today.
- `monthly_cost` is the total for the month.
- `daily_breakdown` lists the month's entries.

Amounts below half a cent are shown as 0.

If a scan raises `OSError` or `ValueError`, the store returns the provider's
last snapshot, or an empty one if it has none, with `log_error` set.
`pricing_estimate` is set unless the store was created with
`pricing_available=True`.

Prices come from the `PricingSource` you pass in. It maps a model name to an
object with a `calculate_cost(usage)` method. A model with no price is
estimated from its input and output tokens together:

| Model name              | Estimated price         |
|-------------------------|-------------------------|
| Starts with `claude`    | $3 per million tokens   |
| Any other name          | $2.50 per million tokens |

## Configuration

The config file lives at `config_path()`. On Linux that is
`$XDG_CONFIG_HOME/claude-bar/config.toml`, or
`~/.config/claude-bar/config.toml` when `XDG_CONFIG_HOME` is not set.

The file is optional: defaults apply when it is missing, and each missing
key takes its default. These are the keys and their defaults:

```toml
debug = false

[providers]
merge_icons = false

[providers.claude]
enabled = true

[providers.codex]
enabled = true

[display]
show_as_remaining = false

[browser]
# preferred = "firefox"

[notifications]
enabled = true
threshold = 0.9

[theme]
mode = "system"   # system, light or dark
```

`SettingsError` is raised in these cases:

- The file cannot be read.
- The file is not valid TOML.
- A value has the wrong type.
- The theme mode is unknown.
- `Settings.validate()` finds `notifications.threshold` outside 0.0 to 1.0.

## Log locations

Claude Code logs are read from two directories:

- `~/.claude/projects`
- `<config dir>/claude/projects`

All `*.jsonl` files under these directories are read, at any depth. A file
named `YYYY-MM-DD.jsonl` is read only if its date falls in the scanned
range. The scanner counts only `assistant` entries whose usage carries a
timestamp. An entry is dated by the local day of that timestamp. Repeated
message/request id pairs are counted once.

Codex logs are read from `$CODEX_HOME/sessions`, or from `~/.codex/sessions`
when `CODEX_HOME` is not set. They are laid out as `YYYY/MM/DD/*.jsonl`. Each
file is dated by its directory. The cumulative `token_count` events in a file
become per-event deltas.

## What it does not do

`usagebar` is a library only:

- It has no command-line tool.
- It has no tray icon or other user interface.
- It sends no desktop notifications.
- It does not fetch rate-limit usage from the providers' services. It only
  stores the `UsageSnapshot` objects you give it.
- It does not download model prices.
- It does not watch the config file for changes. Call
  `SettingsWatcher.reload()` when the file has changed.