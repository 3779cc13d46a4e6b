"""
Idempotent demo content for a fresh install: brand divisions, About page
content and a starter blog category. Rows are matched by slug/name/title
and never overwritten.

Usage:
  python scripts/seed_content.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.kinygroup.models import (  # noqa: E402
    Achievement,
    BlogCategory,
    BrandDivision,
    Client,
    Department,
    JourneyItem,
    TeamMember,
    User,
)
from app.kinygroup.modules.divisions.theme import generate_theme_from_color  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

DIVISIONS = [
    {
        "name": "Kiny Tours & Travel",
        "slug": "kiny-tours",
        "tagline": "Your Gateway to Global Experiences",
        "description": "The tourism industry has become a primary need for society and a great opportunity for the future.",
        "full_description": (
            "Kiny Tours & Travel provides MICE services (Meeting, Incentive, Convention, Exhibition), "
            "tailormade trips, private tours, reward tickets and hotel bookings."
        ),
        "coverage": "167 Countries",
        "delivery": "In-person Tours & Virtual Consultations",
        "color": "#3B82F6",
        "stats": {
            "label1": "Countries", "value1": "167",
            "label2": "English Speaking Drivers", "value2": "150+",
            "label3": "Licensed Guides", "value3": "80+",
            "label4": "Partners", "value4": "30+",
        },
        "services": [
            {"name": "MICE Services", "description": "Meeting, Incentive, Convention, Exhibition planning and execution"},
            {"name": "Tailormade Trips", "description": "Personalized itineraries designed to match your interests"},
            {"name": "Private Tours", "description": "Exclusive travel experiences with dedicated guides"},
        ],
        "achievements": [
            "150+ English speaking drivers spread throughout 167 countries",
            "Partnership program for more than 30 schools in the Jakarta area",
        ],
        "team": [
            {"name": "Andi Pratama", "position": "CEO & Founder"},
            {"name": "Diana Kusuma", "position": "Head of International Operations"},
        ],
        "featured": True,
    },
    {
        "name": "Kiny Education",
        "slug": "kiny-education",
        "tagline": "Learning Without Borders",
        "description": "International study programs, exchanges and school partnerships.",
        "coverage": "Jabodetabek",
        "delivery": "School Programs & Study Tours",
        "color": "#10B981",
        "stats": {"label1": "Students", "value1": "1500+", "label2": "Partner Schools", "value2": "30+"},
        "services": [{"name": "Study Tours", "description": "Educational trips with partner universities"}],
        "achievements": ["Collaborative programs with government and UNESCO"],
        "team": [],
        "featured": True,
    },
]

DEPARTMENTS = [
    {"name": "Education Services", "head": "Dr. Sarah Wijaya", "description": "Mengelola semua program pendidikan dan kurikulum", "color": "#3b82f6", "order": 0},
    {"name": "Cultural Exchange", "head": "Budi Santoso", "description": "Program pertukaran budaya internasional", "color": "#f59e0b", "order": 1},
]

TEAM = [
    {"name": "Andi Pratama", "title": "Founder & CEO", "role": "founder", "department": "Education Services", "order": 0},
    {"name": "Dr. Sarah Wijaya", "title": "Head of Education", "role": "executive", "department": "Education Services", "order": 1},
]

ACHIEVEMENTS = [
    {"title": "Sertifikasi Internasional", "description": "Diakui di lebih dari 170 negara", "icon": "Award", "order": 0, "featured": True},
    {"title": "Jaringan Sekolah", "description": "Kemitraan dengan sekolah di area JABODETABEK", "icon": "Target", "order": 1, "featured": True},
    {"title": "1500+ Siswa", "description": "Bekerja dengan lebih dari 1500 siswa", "icon": "Users", "order": 2, "featured": True},
]

CLIENTS = [
    {"name": "UNESCO", "logo_url": "https://upload.wikimedia.org/wikipedia/commons/b/bc/UNESCO_logo.svg", "order": 0},
]

JOURNEY = [
    {
        "year": "2015",
        "title": "Awal Perjalanan",
        "description": "KINY GROUP berdiri dengan layanan tur pendidikan pertama.",
        "image_url": "https://images.unsplash.com/photo-1488646953014-85cb44e25828?w=1200&q=80",
        "order": 0,
    },
]


def seed_content(*, database_url: str | None = None) -> None:
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    with script_session(database_url) as s:
        admin = s.query(User).filter(User.email == admin_email).one_or_none()
        if not admin:
            raise RuntimeError(f"Admin user {admin_email} not found. Run scripts/init_db.py first.")

        for data in DIVISIONS:
            if s.query(BrandDivision).filter(BrandDivision.slug == data["slug"]).one_or_none():
                continue
            s.add(BrandDivision(**data, theme=generate_theme_from_color(data["color"]), author_id=admin.id))

        depts: dict[str, Department] = {}
        for data in DEPARTMENTS:
            dept = s.query(Department).filter(Department.name == data["name"]).one_or_none()
            if not dept:
                dept = Department(**data)
                s.add(dept)
            depts[data["name"]] = dept
        s.flush()

        for data in TEAM:
            if s.query(TeamMember).filter(TeamMember.name == data["name"]).one_or_none():
                continue
            fields = {k: v for k, v in data.items() if k != "department"}
            s.add(TeamMember(**fields, department_id=depts[data["department"]].id, achievements=[]))

        for model, rows, key in (
            (Achievement, ACHIEVEMENTS, "title"),
            (Client, CLIENTS, "name"),
            (JourneyItem, JOURNEY, "title"),
        ):
            for data in rows:
                if s.query(model).filter(getattr(model, key) == data[key]).one_or_none():
                    continue
                s.add(model(**data))

        if not s.query(BlogCategory).filter(BlogCategory.slug == "berita").one_or_none():
            s.add(BlogCategory(name="Berita", slug="berita", description="Kabar terbaru dari KINY GROUP"))

    print("Seeded demo content (idempotent).")


def main() -> None:
    seed_content(database_url=None)


if __name__ == "__main__":
    main()
