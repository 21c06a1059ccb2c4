"""
Smoke test against a live Supabase project.

    iwanyu-verify [--email EMAIL --password PASSWORD] [--realtime]

Prints one line per check and exits 1 if any check failed.
"""
import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import ValidationError
from supabase import Client

from .config import get_settings
from .realtime import MessageFeed
from .roles import resolve_role
from .routing import ALLOW, FORBIDDEN_ROUTE, home_route, resolve_route
from .session import SessionClient
from .supabase_client import get_supabase_anon_client, get_supabase_async_client, get_supabase_client

logger = logging.getLogger(__name__)

TABLES = ("profiles", "vendors", "products", "orders", "payouts", "messages", "audit_logs")


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str = ""

    def line(self) -> str:
        mark = "✅" if self.ok else "❌"
        return f"{mark} {self.name}" + (f": {self.detail}" if self.detail else "")


def _run(name: str, fn: Callable[[], str]) -> CheckResult:
    try:
        return CheckResult(name, True, fn() or "")
    except Exception as exc:
        logger.debug("Check %s failed", name, exc_info=True)
        return CheckResult(name, False, str(exc))


def check_tables(supabase: Client) -> list[CheckResult]:
    def probe(table):
        def fn():
            rows = supabase.table(table).select("id").limit(1).execute().data or []
            return "reachable" if rows else "reachable (empty)"
        return fn

    return [_run(f"table {table}", probe(table)) for table in TABLES]


def check_buckets(supabase: Client, buckets: tuple[str, ...]) -> list[CheckResult]:
    def probe(bucket):
        def fn():
            files = supabase.storage.from_(bucket).list()
            return f"{len(files or [])} entries at root"
        return fn

    return [_run(f"bucket {bucket}", probe(bucket)) for bucket in buckets]


def check_sign_in(supabase: Client, anon: Client, email: str, password: str) -> tuple[list[CheckResult], Optional[str]]:
    """Signs in, resolves the role and checks the route tree it lands on. Returns the user id on success."""
    sessions = SessionClient(anon)
    try:
        res = sessions.sign_in(email, password)
    except Exception as exc:
        return [CheckResult("sign in", False, str(exc))], None

    results = [CheckResult("sign in", True, email)]
    user_id = res.user.id
    role_check = _run("role resolution", lambda: resolve_role(supabase, user_id, email).role)
    results.append(role_check)

    if role_check.ok:
        role = role_check.detail

        def routes():
            home = home_route(role)
            decision = resolve_route(home, role, authenticated=True)
            if role in ("vendor", "admin") and decision.action != ALLOW:
                raise AssertionError(f"home {home} is not reachable for {role}")
            other = "/admin" if role == "vendor" else "/vendor"
            blocked = resolve_route(other, role, authenticated=True)
            if role in ("vendor", "admin") and blocked.target != FORBIDDEN_ROUTE:
                raise AssertionError(f"{other} is not forbidden for {role}")
            return f"{role} lands on {decision.target or home}"

        results.append(_run("role routing", routes))

    results.append(_run("sign out", lambda: sessions.sign_out() or "ok"))
    return results, user_id


async def _probe_realtime(receiver_id: str) -> str:
    client = await get_supabase_async_client()
    feed = MessageFeed(client, receiver_id)
    await feed.start()
    try:
        return f"subscribed to {feed.channel_name}"
    finally:
        await feed.stop()


def run_checks(
    supabase: Client,
    anon: Client,
    email: Optional[str] = None,
    password: Optional[str] = None,
    realtime: bool = False,
) -> list[CheckResult]:
    settings = get_settings()
    results = [
        CheckResult("SUPABASE_URL configured", bool(settings.SUPABASE_URL)),
        CheckResult("service role key configured", bool(settings.SUPABASE_SERVICE_ROLE_KEY)),
    ]
    results.extend(check_tables(supabase))
    results.extend(check_buckets(supabase, (settings.PRODUCT_IMAGES_BUCKET, settings.VENDOR_DOCUMENTS_BUCKET)))

    user_id = None
    if email and password:
        sign_in_results, user_id = check_sign_in(supabase, anon, email, password)
        results.extend(sign_in_results)

    if realtime:
        if user_id:
            results.append(_run("realtime messages", lambda: asyncio.run(_probe_realtime(user_id))))
        else:
            results.append(CheckResult("realtime messages", False, "needs --email and --password"))
    return results


def settings_checks() -> list[CheckResult]:
    """Reports missing or invalid settings as failed checks instead of raising."""
    try:
        get_settings()
    except ValidationError as exc:
        return [
            CheckResult(f"{'.'.join(str(part) for part in err['loc'])} configured", False, err["msg"])
            for err in exc.errors()
        ]
    return []


def _report(results: list[CheckResult]) -> int:
    for result in results:
        print(result.line())

    failed = [r for r in results if not r.ok]
    print(f"\n{len(results) - len(failed)}/{len(results)} checks passed")
    return 1 if failed else 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke test the Iwanyu Supabase project.")
    parser.add_argument("--email", help="Account to sign in with")
    parser.add_argument("--password", help="Password for --email")
    parser.add_argument("--realtime", action="store_true", help="Also open a realtime messages subscription")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    broken_settings = settings_checks()
    if broken_settings:
        return _report(broken_settings)

    results = run_checks(
        get_supabase_client(),
        get_supabase_anon_client(),
        email=args.email,
        password=args.password,
        realtime=args.realtime,
    )
    return _report(results)


if __name__ == "__main__":
    sys.exit(main())
