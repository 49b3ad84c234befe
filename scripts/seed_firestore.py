import sys
from datetime import datetime, timezone
from google.cloud import firestore  # uses GOOGLE_APPLICATION_CREDENTIALS env var

# Run with: PYTHONPATH=. python scripts/seed_firestore.py my-store.myshopify.com [plan]

def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

def seed(shop: str, plan: str = "basic"):
    """
    Creates / refreshes the plan document the chat gate reads:
      shops/{shop} = {plan, active, updated_at}
    plus the current month's usage counter at 0 if it does not exist yet.
    """
    db = firestore.Client()
    now = datetime.now(timezone.utc)

    db.collection("shops").document(shop).set({
        "shop": shop,
        "plan": plan,
        "active": True,
        "updated_at": iso(now),
    }, merge=True)

    usage_ref = db.collection("usage").document(f"{shop}:{now.strftime('%Y%m')}")
    if not usage_ref.get().exists:
        usage_ref.set({"shop": shop, "count": 0, "updated_at": iso(now)})

    # OPTIONAL: placeholder so the collection shows up in the console
    db.collection("action_logs").document("_placeholder").set({"note": "delete_me"})

    print(f"✅ Seeded shop {shop} on plan '{plan}'.")
    print("Tip: You can delete the _placeholder doc later.")

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: seed_firestore.py <shop-domain> [plan]")
        sys.exit(1)
    seed(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else "basic")
