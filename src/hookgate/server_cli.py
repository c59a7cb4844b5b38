"""CLI entry point for the Hookgate server, delivery worker and maintenance commands."""

import argparse
import asyncio
import os
import sys

_STATUSES = ("pending", "processing", "processed", "failed")


def _print_table(headers: list[str], rows: list[list[str]]) -> None:
    widths = [max(len(str(cell)) for cell in column) for column in zip(headers, *rows)]
    border = "+" + "+".join("-" * (width + 2) for width in widths) + "+"
    print(border)
    print("| " + " | ".join(str(cell).ljust(width) for cell, width in zip(headers, widths)) + " |")
    print(border)
    for row in rows:
        print("| " + " | ".join(str(cell).ljust(width) for cell, width in zip(row, widths)) + " |")
    print(border)


def _confirm(question: str) -> bool:
    try:
        answer = input(f"{question} (yes/no) [no]: ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _runtime():
    from hookgate.config import settings
    from hookgate.runtime import build_runtime

    return build_runtime(settings)


# serve / worker


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("hookgate.main:app", host=args.host, port=args.port)
    return 0


async def _run_workers(concurrency: int) -> None:
    from hookgate.runtime import prepare_database
    from hookgate.workers.runner import run_worker

    runtime = _runtime()
    await prepare_database(runtime)
    settings = runtime.settings
    tasks = [
        asyncio.create_task(run_worker(
            runtime.queue,
            runtime.session_factory,
            runtime.worker,
            poll_interval=settings.worker_poll_interval,
            name=f"worker-{index}",
        ))
        for index in range(max(concurrency, 1))
    ]
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        await runtime.close()


def _worker(args: argparse.Namespace) -> int:
    from hookgate.config import settings
    from hookgate.logging_config import configure_logging

    if settings.local_mode:
        print("Local mode delivers webhooks inside the API process; a standalone worker needs Redis.", file=sys.stderr)
        return 1

    configure_logging(log_level=settings.log_level, json_output=True)
    try:
        asyncio.run(_run_workers(args.concurrency or settings.worker_concurrency))
    except KeyboardInterrupt:
        pass
    return 0


# prune


async def _prune(args: argparse.Namespace) -> int:
    from hookgate.models.enums import WebhookStatus
    from hookgate.services.maintenance import prune_webhooks

    runtime = _runtime()
    days = args.days if args.days is not None else runtime.settings.retention_days
    if days is None:
        print("Retention is set to forever. Nothing to prune.")
        await runtime.close()
        return 0

    if days < 0:
        print("The --days option must be zero or greater.", file=sys.stderr)
        await runtime.close()
        return 1

    status = WebhookStatus(args.status) if args.status else None
    try:
        async with runtime.session_factory() as session:
            preview = await prune_webhooks(session, days, status=status, provider=args.provider, dry_run=True)
            if preview.matched == 0:
                print("No webhooks to prune.")
                return 0

            print(f"Found {preview.matched} webhooks older than {days} days.")
            if args.dry_run:
                print("Dry run - no records will be deleted.")
                _print_table(
                    ["Provider", "Status", "Count"],
                    [[row.provider, row.status.value, str(row.count)] for row in preview.summary],
                )
                return 0

            if not args.yes and not _confirm(f"Do you want to delete {preview.matched} webhook records?"):
                print("Aborted.")
                return 0

            result = await prune_webhooks(session, days, status=status, provider=args.provider)
            print(f"Deleted {result.deleted} webhook records.")
            return 0
    finally:
        await runtime.close()


# replay


def _describe_webhook(webhook) -> None:
    print()
    _print_table(
        ["Field", "Value"],
        [
            ["UUID", webhook.uuid],
            ["Provider", webhook.provider],
            ["Event Type", webhook.event_type or "N/A"],
            ["External ID", webhook.external_id or "N/A"],
            ["Status", webhook.status],
            ["Attempts", str(webhook.attempts)],
            ["Created", webhook.created_at.strftime("%Y-%m-%d %H:%M:%S")],
        ],
    )
    print()


async def _replay(args: argparse.Namespace) -> int:
    from hookgate.repositories.webhook_repo import WebhookRepository
    from hookgate.services.maintenance import replay_webhook
    from hookgate.workers.delivery import describe_exception

    runtime = _runtime()
    sync = args.sync
    if runtime.settings.local_mode and not sync:
        print("Local mode has no shared queue; processing synchronously.")
        sync = True

    try:
        async with runtime.session_factory() as session:
            webhook = await WebhookRepository(session).find(args.id)
            if webhook is None:
                print(f"Webhook [{args.id}] not found.", file=sys.stderr)
                return 1

            _describe_webhook(webhook)

            force = args.force
            if webhook.is_processed() and not force:
                print("This webhook has already been processed.")
                if not _confirm("Do you want to replay it anyway?"):
                    return 0
                force = True

            if sync:
                print("Processing webhook synchronously...")
            try:
                await replay_webhook(session, args.id, runtime.pipeline, runtime.queue, force=force, sync=sync)
            except Exception as exc:
                print(f"Processing failed: {describe_exception(exc)}", file=sys.stderr)
                return 1

            print("Webhook processed successfully." if sync else "Webhook queued for processing.")
            return 0
    finally:
        await runtime.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hookgate-server",
        description="Hookgate: verified inbound webhook receiver",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, in-process queue, no Redis required",
    )
    parser.set_defaults(handler=_serve, host="0.0.0.0", port=8080)
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP server (default)")
    serve.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    serve.set_defaults(handler=_serve)

    worker = subparsers.add_parser("worker", help="Run standalone delivery workers against Redis")
    worker.add_argument("--concurrency", type=int, default=None, help="Number of worker loops")
    worker.set_defaults(handler=_worker)

    prune = subparsers.add_parser("prune", help="Prune old webhook records")
    prune.add_argument("--days", type=int, default=None, help="Number of days to retain (default from config)")
    prune.add_argument("--status", choices=_STATUSES, default=None, help="Only prune webhooks with this status")
    prune.add_argument("--provider", default=None, help="Only prune webhooks from this provider")
    prune.add_argument("--dry-run", action="store_true", help="Show what would be deleted without deleting")
    prune.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    prune.set_defaults(handler=lambda args: asyncio.run(_prune(args)))

    replay = subparsers.add_parser("replay", help="Replay a previously received webhook")
    replay.add_argument("id", help="The UUID or ID of the webhook to replay")
    replay.add_argument("--sync", action="store_true", help="Process synchronously instead of queueing")
    replay.add_argument("--force", action="store_true", help="Replay even if already processed")
    replay.set_defaults(handler=lambda args: asyncio.run(_replay(args)))

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.local:
        os.environ["HOOKGATE_LOCAL_MODE"] = "1"

    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
