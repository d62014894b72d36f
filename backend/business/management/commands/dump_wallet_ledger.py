import json

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Sum

from accounts.models import CustomUser, Wallet, WalletTransaction


def _find_user(identifier: str):
    identifier = str(identifier or "").strip()
    if not identifier:
        return None
    if identifier.isdigit():
        u = CustomUser.objects.filter(pk=int(identifier)).first()
        if u:
            return u
    return CustomUser.objects.filter(username=identifier).first()


class Command(BaseCommand):
    help = "Print a user's wallets (balance, real_ratio, version), per-type totals and recent ledger rows as JSON."

    def add_arguments(self, parser):
        parser.add_argument("--user", required=True, help="User id or username")
        parser.add_argument("--currency", help="Only this currency (default: all of the user's wallets)")
        parser.add_argument("--limit", type=int, default=50, help="Recent transactions per wallet (default 50)")
        parser.add_argument("--outfile", help="Write the JSON here instead of stdout")

    def handle(self, *args, **opts):
        ident = opts["user"]
        u = _find_user(ident)
        if not u:
            raise CommandError(f"User not found for '{ident}'")
        limit = int(opts.get("limit") or 50)
        if limit <= 0:
            raise CommandError("--limit must be positive")

        wallets = Wallet.objects.filter(user=u).order_by("currency")
        if opts.get("currency"):
            wallets = wallets.filter(currency=opts["currency"].strip().upper())

        out = {"user": {"id": u.pk, "username": u.username, "role": u.role}, "wallets": []}
        for w in wallets:
            txs = WalletTransaction.objects.filter(wallet=w)
            totals = list(txs.values("type").annotate(sum=Sum("amount")).order_by("type"))
            recent = [
                {
                    "id": t["id"],
                    "created_at": str(t["created_at"]),
                    "type": t["type"],
                    "amount": str(t["amount"]),
                    "is_real": t["is_real"],
                    "balance_after": str(t["balance_after"]),
                    "real_ratio_after": t["real_ratio_after"],
                    "order_id": t["order_id"],
                    "status": t["status"],
                }
                for t in txs.order_by("-created_at", "-id").values(
                    "id", "created_at", "type", "amount", "is_real", "balance_after", "real_ratio_after", "order_id", "status"
                )[:limit]
            ]
            out["wallets"].append({
                "currency": w.currency,
                "balance": str(w.balance),
                "real_ratio": w.real_ratio,
                "real_balance": str(w.real_balance),
                "version": w.version,
                "totals_by_type": [{"type": r["type"], "sum": str(r["sum"])} for r in totals],
                "recent": recent,
            })

        payload = json.dumps(out, indent=2)
        if opts.get("outfile"):
            with open(opts["outfile"], "w", encoding="utf-8") as f:
                f.write(payload)
            self.stdout.write(self.style.SUCCESS(f"Wrote ledger for {u.username} to {opts['outfile']}"))
        else:
            self.stdout.write(payload)
