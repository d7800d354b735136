from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, Optional

from .cleanup import cleanup
from .config import InstallerConfig, load_config
from .errors import InstallExitCodeError, ValidationError
from .installer import RunOutcome
from .lib.download import Downloader
from .logging_utils import configure_logging
from .pipeline import RunContext, RunState, run_pipeline
from .request import DEFAULT_EXE_ARGS, DEFAULT_HASH_ALGORITHM, DEFAULT_MSI_ARGS, TrustedHosts, build_request
from .steps import PostInstallStep, PreflightStep, ResolveInstallerStep, RunInstallerStep
from .summary_store import build_summary, save_summary

logger = logging.getLogger(__name__)


def build_steps():
    return [
        PreflightStep(),
        ResolveInstallerStep(),
        RunInstallerStep(),
        PostInstallStep(),
    ]


def run(
    *,
    cfg: InstallerConfig,
    params: Dict[str, Any],
    downloader: Optional[Downloader] = None,
    summary_path: Optional[str] = None,
    dry_run: bool = False,
    level: int = logging.INFO,
) -> RunOutcome:
    """Run one installation to an outcome. Never raises for run failures."""

    log_path = configure_logging(log_path=cfg.log_path, level=level)
    logger.info("=== Installation run: %s ===", params.get("app_name"))

    request = None
    state = RunState()
    error: Optional[BaseException] = None

    try:
        request = build_request(trusted_hosts=TrustedHosts(cfg.trusted_hosts), **params)
        ctx = RunContext(
            request=request,
            config=cfg,
            downloader=downloader
            or Downloader(timeout_s=cfg.download_timeout_s, curl_path=cfg.curl),
            dry_run=dry_run,
        )
        result = run_pipeline(ctx=ctx, steps=build_steps(), state=state)
        state = result.state
        outcome = state.outcome or RunOutcome.success()
    except InstallExitCodeError as e:
        logger.error("Installation failed: %s", e)
        state = getattr(e, "run_state", state)
        outcome = e.outcome
        error = e
    except Exception as e:
        logger.exception("Installation failed")
        state = getattr(e, "run_state", state)
        outcome = RunOutcome.failed(f"{type(e).__name__}: {e}")
        error = e

    logger.info(
        "Run finished: %s (exit code %s)%s",
        outcome.status.value,
        outcome.process_exit_code,
        f" - {outcome.reason}" if outcome.reason else "",
    )

    res = state.resolution
    archived = cleanup(
        res.installer_path if res else None,
        res.local_archive_path if res else None,
        cfg.local_cache_root,
        log_path,
        app_name=(request.app_name if request else str(params.get("app_name") or "")) or "appcache",
        permanent_log_dir=cfg.permanent_log_dir,
        network_root=cfg.network_root,
        attempts=cfg.delete_attempts,
        delay_s=cfg.delete_retry_delay_s,
    )

    if summary_path:
        summary = build_summary(request=request, state=state, outcome=outcome, error=error, archived_log=archived)
        try:
            save_summary(summary_path, summary)
        except OSError as e:
            logger.error("Could not write run summary %s: %s", summary_path, e)

    return outcome


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="appcache-install",
        description="Fetch an installer through a shared network cache and run it silently.",
    )
    p.add_argument("--url", required=True, help="Source URL of the installer or archive (http/https)")
    p.add_argument("--app-name", required=True, help="Cache directory name for the application")
    p.add_argument(
        "--installer-path",
        required=True,
        help="Installer path relative to the app cache (e.g. setup.exe or bin/app.msi)",
    )
    p.add_argument("--msi-args", default=DEFAULT_MSI_ARGS, help=f"msiexec arguments (default {DEFAULT_MSI_ARGS})")
    p.add_argument("--exe-args", default=DEFAULT_EXE_ARGS, help=f"exe installer arguments (default {DEFAULT_EXE_ARGS})")
    p.add_argument("--hash", default="", help="Expected digest of the downloaded file")
    p.add_argument("--hash-algorithm", default=DEFAULT_HASH_ALGORITHM)
    p.add_argument("--allow-reboot", action="store_true", help="Reboot when the installer returns 3010")
    p.add_argument("--pre-script", default=None, help="Script to run before installing")
    p.add_argument("--post-script", default=None, help="Script to run after a successful install")
    p.add_argument("--config", default=None, help="Installer config (YAML)")
    p.add_argument("--network-root", default=None, help="Shared network cache root")
    p.add_argument("--local-cache-root", default=None, help="Local cache root")
    p.add_argument("--log", default=None, help="Path to the run log")
    p.add_argument("--permanent-log-dir", default=None, help="Directory the run log is archived to")
    p.add_argument(
        "--install-timeout",
        type=float,
        default=None,
        help="Kill the installer after this many seconds (0 waits forever, default 3600)",
    )
    p.add_argument("--summary", default=None, help="Write a run summary (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Resolve the installer but do not execute anything")
    p.add_argument("--verbose", action="store_true")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config)
    except (ValidationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    cfg = cfg.with_overrides(
        paths__network_root=args.network_root,
        paths__local_cache_root=args.local_cache_root,
        paths__log_path=args.log,
        paths__permanent_log_dir=args.permanent_log_dir,
        install__timeout_s=args.install_timeout,
    )

    outcome = run(
        cfg=cfg,
        params=dict(
            source_url=args.url,
            app_name=args.app_name,
            installer_relative_path=args.installer_path,
            msi_args=args.msi_args,
            exe_args=args.exe_args,
            expected_hash=args.hash,
            hash_algorithm=args.hash_algorithm,
            allow_reboot=args.allow_reboot,
            pre_script=args.pre_script,
            post_script=args.post_script,
        ),
        summary_path=args.summary,
        dry_run=bool(args.dry_run),
        level=logging.DEBUG if args.verbose else logging.INFO,
    )
    return outcome.process_exit_code


if __name__ == "__main__":
    raise SystemExit(main())
