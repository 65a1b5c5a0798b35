#!/usr/bin/env python3
"""Seed the database with sample salons, their catalog and a few coupons."""
import sys
from pathlib import Path

# Add the parent directory to the path so we can import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from salonbook import create_app
from salonbook.extensions import db
from salonbook.models import Coupon, Package, Salon, Service, Specialist

SAMPLE_SALONS = [
    {
        "name": "Belle Curls",
        "address": "6993 Meadow Valley Terrace, New York, NY 10001",
        "distance": "1.2 km",
        "rating": 4.8,
        "open_hours": "9:00 AM - 9:00 PM",
        "phone": "+1 212 555 0101",
        "website": "www.bellecurls.com",
        "latitude": 40.7128,
        "longitude": -74.006,
        "about": "Premium salon offering precision cuts, color and spa services.",
        "services": [
            ("Precision Haircut", 35, "30 min", "Haircut"),
            ("Blow Dry & Style", 25, "25 min", "Haircut"),
            ("Full Hair Color", 90, "90 min", "Hair Color"),
            ("Gel Manicure", 30, "35 min", "Nails"),
            ("Relaxation Massage", 75, "60 min", "Massage"),
        ],
        "packages": [
            ("Bridal Package", 280, 350, ["Full Hair Color", "Gel Manicure"]),
        ],
        "specialists": [
            ("James Rivera", "Senior Stylist", 4.9),
            ("Lisa Park", "Color Specialist", 4.8),
        ],
    },
    {
        "name": "Clip & Trim",
        "address": "4598 Lincoln Drive, New York, NY 10003",
        "distance": "2.4 km",
        "rating": 4.9,
        "is_open": False,
        "open_hours": "10:00 AM - 7:00 PM",
        "phone": "+1 212 555 0103",
        "website": "www.clipandtrim.com",
        "latitude": 40.73,
        "longitude": -74.02,
        "about": "Precision cuts and classic barbering.",
        "services": [
            ("Classic Haircut", 25, "25 min", "Haircut"),
            ("Hot Towel Shave", 30, "30 min", "Haircut"),
            ("Beard Trim", 15, "15 min", "Haircut"),
            ("Head Massage", 20, "15 min", "Massage"),
        ],
        "packages": [],
        "specialists": [
            ("Marcus Chen", "Master Barber", 4.8),
        ],
    },
]

SAMPLE_COUPONS = [
    {"code": "SAVE10", "discount": 10, "discount_type": "percentage", "expiry_date": "2099-12-31"},
    {"code": "FLAT5", "discount": 5, "discount_type": "fixed", "expiry_date": "2099-12-31", "usage_limit": 100},
    {"code": "OLD20", "discount": 20, "discount_type": "percentage", "expiry_date": "2020-01-01"},
]


def seed_salons():
    """Add sample salons and coupons unless they already exist."""
    app = create_app()

    with app.app_context():
        db.create_all()

        for data in SAMPLE_SALONS:
            if Salon.query.filter_by(name=data["name"]).first():
                print(f"⚠️  Salon {data['name']} already exists, skipping")
                continue

            fields = {k: v for k, v in data.items() if k not in {"services", "packages", "specialists"}}
            salon = Salon(**fields)
            db.session.add(salon)
            db.session.flush()

            for name, price, duration, category in data["services"]:
                db.session.add(Service(salon_id=salon.salon_id, name=name, price=price, duration=duration, category=category))
            for name, price, original_price, included in data["packages"]:
                db.session.add(Package(salon_id=salon.salon_id, name=name, price=price, original_price=original_price, services=included))
            for name, role, rating in data["specialists"]:
                db.session.add(Specialist(salon_id=salon.salon_id, name=name, role=role, rating=rating))
            print(f"✅ Added salon {salon.name} with {len(data['services'])} services")

        for data in SAMPLE_COUPONS:
            if Coupon.query.filter_by(code=data["code"]).first():
                continue
            db.session.add(Coupon(**data))
            print(f"✅ Added coupon {data['code']}")

        db.session.commit()
        print("\n🎉 Seeding complete")


if __name__ == "__main__":
    seed_salons()
