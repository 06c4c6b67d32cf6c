"""CLI entry point for twofactor."""

from __future__ import annotations

import time

import click
from pydantic import SecretBytes
from rich.console import Console

from twofactor import otp, recovery
from twofactor import secret as codec
from twofactor.clock import utcnow
from twofactor.config import Algorithm
from twofactor.exceptions import InvalidSecretFormat
from twofactor.models import OwnerRef
from twofactor.record import TwoFactorRecord
from twofactor.validator import verify_totp

console = Console()

_ALGORITHMS = click.Choice([a.value for a in Algorithm], case_sensitive=False)


def _decode_secret(value: str) -> bytes:
    try:
        return codec.decode(value)
    except InvalidSecretFormat as e:
        raise click.BadParameter(str(e), param_hint="SECRET") from e


@click.group()
def main() -> None:
    """twofactor — TOTP two-factor authentication toolkit."""


@main.command()
def status() -> None:
    """Show effective configuration."""
    from twofactor.config import settings

    console.print("[bold]Two-Factor Configuration[/bold]")
    console.print(f"  Enabled: {settings.enabled}")
    console.print(f"  TOTP: {settings.digits} digits / {settings.seconds}s / window {settings.window} / {settings.algorithm}")
    console.print(f"  Input: {settings.input}")
    rc = settings.recovery_codes
    console.print(f"  Recovery codes: {'on' if rc.enabled else 'off'} ({rc.count} x {rc.length} chars)")
    sd = settings.safe_devices
    console.print(f"  Safe devices: {'on' if sd.enabled else 'off'} (max {sd.max}, {sd.expiration_days} days, cookie {sd.cookie})")
    console.print(f"  Master key: {'set' if settings.master_key else '[red]not set[/red]'}")
    console.print(f"  Database: {settings.database_url.split('@')[-1]}")


@main.command()
@click.argument("label")
@click.option("--issuer", default=None, help="Issuer shown in the authenticator app")
def provision(label: str, issuer: str | None) -> None:
    """Generate a secret and its otpauth:// provisioning URI."""
    from twofactor.config import settings

    record = TwoFactorRecord.provision(OwnerRef("cli", label), label, settings)
    console.print(f"Secret: [bold]{codec.encode(record.secret)}[/bold]")
    console.print(record.make_uri_for_provisioning(issuer if issuer is not None else settings.issuer), soft_wrap=True)


@main.command()
@click.argument("secret")
@click.option("--digits", type=click.IntRange(6, 8), default=6)
@click.option("--seconds", type=click.IntRange(min=1), default=30)
@click.option("--algorithm", type=_ALGORITHMS, default="sha1")
@click.option("--at", "timestamp", type=float, default=None, help="Unix time (default: now)")
def code(secret: str, digits: int, seconds: int, algorithm: str, timestamp: float | None) -> None:
    """Print the TOTP code for a Base32 secret."""
    key = _decode_secret(secret)
    at = time.time() if timestamp is None else timestamp
    click.echo(otp.totp(key, at, seconds, digits, Algorithm(algorithm.lower())))


@main.command()
@click.argument("secret")
@click.argument("submitted")
@click.option("--digits", type=click.IntRange(6, 8), default=6)
@click.option("--seconds", type=click.IntRange(min=1), default=30)
@click.option("--window", type=click.IntRange(min=0), default=1)
@click.option("--algorithm", type=_ALGORITHMS, default="sha1")
def verify(secret: str, submitted: str, digits: int, seconds: int, window: int, algorithm: str) -> None:
    """Check a code against a Base32 secret; exits 1 when invalid."""
    now = utcnow()
    record = TwoFactorRecord(
        owner_type="cli",
        owner_id="cli",
        shared_secret=SecretBytes(_decode_secret(secret)),
        enabled_at=now,
        label="cli",
        digits=digits,
        seconds=seconds,
        window=window,
        algorithm=Algorithm(algorithm.lower()),
    )
    if verify_totp(record, submitted, now):
        console.print("[green]Code valid[/green]")
    else:
        console.print("[red]Code invalid[/red]")
        raise SystemExit(1)


@main.command("recovery-codes")
@click.option("--count", type=click.IntRange(min=1), default=10)
@click.option("--length", type=click.IntRange(min=4), default=10)
def recovery_codes(count: int, length: int) -> None:
    """Generate a batch of recovery codes."""
    for c in recovery.generate_codes(count, length):
        click.echo(c)


@main.command("init-db")
def init_db() -> None:
    """Create the two_factor_authentications table."""
    from twofactor.store import PostgresRecordStore

    try:
        PostgresRecordStore().create_schema()
    except Exception as e:
        console.print(f"[red]Schema setup failed: {e}[/red]")
        raise SystemExit(1) from e
    console.print("[green]Table two_factor_authentications ready[/green]")


if __name__ == "__main__":
    main()
