import sys
from datetime import datetime, timezone
from google.cloud import firestore

shop = sys.argv[1] if len(sys.argv) > 1 else "demo-store.myshopify.com"

db = firestore.Client()

doc = db.collection("shops").document(shop).get()
print("Shop", shop, "exists:", doc.exists)

if doc.exists:
    sd = doc.to_dict()
    print("Plan:", sd.get("plan"), "| active:", sd.get("active"))

    bucket = datetime.now(timezone.utc).strftime("%Y%m")
    usage = db.collection("usage").document(f"{shop}:{bucket}").get()
    print("Usage", bucket, "exists:", usage.exists)

    if usage.exists:
        ud = usage.to_dict()
        print("Conversations this month:", ud.get("count", 0))
        print("Track lookups:", ud.get("track_order", 0), "| Messages:", ud.get("message", 0))
