from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError, CommandParser
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from accounts.models import CustomUser
from business.models import PlatformFeeConfig


def _percent(raw: str, label: str) -> str:
    try:
        pct = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise CommandError(f"{label}: not a number: {raw!r}")
    if pct < 0 or pct > 100:
        raise CommandError(f"{label}: must be between 0 and 100, got {pct}")
    return str(pct)


def _parse_pairs(values, label):
    """['PRODUCT=15', 'WEBINAR=12'] -> {'PRODUCT': '15', 'WEBINAR': '12'}"""
    out = {}
    for item in values or []:
        if "=" not in item:
            raise CommandError(f"{label}: expected KEY=PERCENT, got {item!r}")
        key, raw = item.split("=", 1)
        key = key.strip()
        if not key:
            raise CommandError(f"{label}: empty key in {item!r}")
        out[key] = _percent(raw, f"{label}[{key}]")
    return out


class Command(BaseCommand):
    help = (
        "Create or update a PlatformFeeConfig.\n"
        "Without --expert the platform-wide config is seeded. Existing configs for the same scope\n"
        "that are still open-ended are closed at --effective-from unless --update-current is given,\n"
        "in which case the current config is edited in place."
    )

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("--expert", help="Expert username or id (omit for platform-wide)")
        parser.add_argument("--default", dest="default_pct", default="10.00", help="default_fee_percent (default 10.00)")
        parser.add_argument("--type", dest="types", action="append", default=[], help="ORDER_TYPE=PERCENT, repeatable")
        parser.add_argument("--category", dest="categories", action="append", default=[], help="CATEGORY=PERCENT, repeatable")
        parser.add_argument("--effective-from", help="ISO datetime (default now)")
        parser.add_argument("--notes", default="", help="Free-text note")
        parser.add_argument("--update-current", action="store_true", help="Edit the active config instead of versioning")

    def handle(self, *args, **opts):
        expert = None
        ident = (opts.get("expert") or "").strip()
        if ident:
            expert = (CustomUser.objects.filter(pk=int(ident)).first() if ident.isdigit() else None) or \
                CustomUser.objects.filter(username=ident).first()
            if not expert:
                raise CommandError(f"Expert not found for '{ident}'")

        effective_from = timezone.now()
        if opts.get("effective_from"):
            effective_from = parse_datetime(opts["effective_from"])
            if effective_from is None:
                raise CommandError(f"--effective-from: not an ISO datetime: {opts['effective_from']!r}")
            if timezone.is_naive(effective_from):
                effective_from = timezone.make_aware(effective_from)

        fields = {
            "default_fee_percent": Decimal(_percent(opts["default_pct"], "--default")),
            "fee_by_type": _parse_pairs(opts.get("types"), "--type"),
            "fee_by_category": _parse_pairs(opts.get("categories"), "--category"),
            "notes": opts.get("notes") or "",
        }

        with transaction.atomic():
            current = PlatformFeeConfig.active_for(expert, effective_from)
            if current is not None and current.expert_id != getattr(expert, "pk", None):
                # active_for fell back to the platform config; this expert has none yet
                current = None

            if opts.get("update_current") and current is not None:
                for k, v in fields.items():
                    setattr(current, k, v)
                current.save()
                self.stdout.write(self.style.SUCCESS(f"Updated {current} (id={current.pk})"))
                return

            scope = PlatformFeeConfig.objects.filter(expert=expert, effective_until__isnull=True, effective_from__lt=effective_from)
            closed = scope.update(effective_until=effective_from)
            cfg = PlatformFeeConfig.objects.create(expert=expert, effective_from=effective_from, **fields)

        if closed:
            self.stdout.write(f"Closed {closed} previous config(s) at {effective_from.isoformat()}")
        self.stdout.write(self.style.SUCCESS(f"Created {cfg} (id={cfg.pk}) effective {effective_from.isoformat()}"))
