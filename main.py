#!/usr/bin/env python3
"""
GitHub Issue Operator - Main CLI entrypoint

Keeps GitHub issues in sync with GithubIssue records stored in Supabase.
Each record declares a repository, a title and a description; the operator
creates or updates the matching issue, reports its state as a condition, and
closes it when the record is deleted.

Usage:
    python main.py run                          # Run the controller until Ctrl+C
    python main.py reconcile default/my-issue   # One reconcile pass for a record
    python main.py serve --port 8080            # Record API
"""

import argparse
import sys
from datetime import timedelta

from controller.errors import MissingCredential, OperatorError
from controller.manager import ControllerManager
from controller.reconciler import GithubIssueReconciler
from models.data_models import NamespacedName
from utils.config_loader import get_github_token, load_config
from utils.logger import setup_logger

logger = setup_logger()


def build_reconciler(config, store=None, github=None) -> GithubIssueReconciler:
    """
    Wire the reconciler from configuration.
    
    Args:
        config: Validated Config
        store: Record store (default: SupabaseRecordStore from config)
        github: GitHub client (default: GitHubClient with the configured token)
    
    Raises:
        MissingCredential: If no GitHub token is configured
    """
    settings = config.controller
    
    if github is None:
        from trackers.github import GitHubClient
        github = GitHubClient(
            get_github_token(config),
            base_url=settings.github_api_url,
            timeout=settings.github_timeout_seconds,
        )
    
    if store is None:
        from storage.supabase_store import SupabaseRecordStore
        store = SupabaseRecordStore(
            config.credentials.supabase_url,
            config.credentials.supabase_key
        )
    
    return GithubIssueReconciler(
        store,
        github,
        finalizer_name=settings.finalizer_name,
        resync_period=timedelta(seconds=settings.resync_period_seconds),
        host=settings.github_host,
    )


def run_controller(config) -> bool:
    """Run the controller manager until interrupted."""
    reconciler = build_reconciler(config)
    settings = config.controller
    
    logger.info("=" * 80)
    logger.info("STARTING GITHUB ISSUE OPERATOR")
    logger.info("=" * 80)
    logger.info(f"Resync period: {settings.resync_period_seconds:.0f}s")
    logger.info(f"GitHub timeout: {settings.github_timeout_seconds:.0f}s")
    logger.info(f"Workers: {settings.max_concurrent_reconciles}")
    
    manager = ControllerManager(
        reconciler.store,
        reconciler,
        workers=settings.max_concurrent_reconciles,
        poll_interval=settings.watch_poll_interval_seconds,
    )
    manager.run()
    return True


def reconcile_once(config, key: NamespacedName) -> bool:
    """Run a single reconcile pass and report the outcome."""
    reconciler = build_reconciler(config)
    
    try:
        result = reconciler.reconcile(key)
    except OperatorError as e:
        logger.error(f"Reconcile of {key} failed: {e}")
        return False
    
    if result.requeue_after is not None:
        logger.info(f"Reconciled {key}; next resync in {result.requeue_after.total_seconds():.0f}s")
    else:
        logger.info(f"Reconciled {key}; no further resync needed")
    return True


def main():
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="GitHub Issue Operator - sync GitHub issues with declarative records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the controller
  python main.py run
  
  # Reconcile one record now
  python main.py reconcile default/widgets-bug
  
  # Start the record API
  python main.py serve --host 0.0.0.0 --port 8080
        """
    )
    
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    
    subparsers.add_parser(
        "run",
        help="Run the controller (watch records, reconcile, resync)"
    )
    
    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Run one reconcile pass for a record"
    )
    reconcile_parser.add_argument(
        "record",
        help="Record key in format 'namespace/name' (bare names use 'default')"
    )
    
    serve_parser = subparsers.add_parser(
        "serve",
        help="Start the GithubIssue record API"
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the API server on (default: 8000)"
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload (use for production)"
    )
    
    args = parser.parse_args()
    
    # Show help if no command provided
    if not args.command:
        parser.print_help()
        sys.exit(1)
    
    if args.command == "serve":
        from backend.server import serve
        serve(args.host, args.port, reload=not args.no_reload)
        sys.exit(0)
    
    config = load_config()
    setup_logger(config.log_level)
    
    if args.command == "reconcile":
        try:
            key = NamespacedName.parse(args.record)
        except ValueError as e:
            logger.error(str(e))
            sys.exit(1)
    
    try:
        if args.command == "run":
            success = run_controller(config)
        else:
            success = reconcile_once(config, key)
    except MissingCredential as e:
        logger.error(f"❌ {e}. Add GITHUB_TOKEN to your .env file.")
        sys.exit(1)
    
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
