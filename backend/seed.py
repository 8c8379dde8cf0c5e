#!/usr/bin/env python3
"""
Seed Firestore with users, tasks, logs and announcements from a JSON file.

Usage:
    python seed.py seed-data.json

The file holds one list per collection; every record needs an "id",
which becomes the document id.
"""
import json
import logging
import sys

from firebase_admin import firestore

from firebase_utils import init_firebase
from utils.validators import Validators, normalize_role

logger = logging.getLogger(__name__)

SEEDED_COLLECTIONS = ['users', 'tasks', 'logs', 'announcements']


def check_user_record(user):
    """Reject records the hierarchy cannot place."""
    role = normalize_role(user.get('role'))
    if not Validators.validate_role(role):
        raise ValueError(f"User {user.get('id')}: invalid role {user.get('role')!r}")
    if not Validators.validate_placement(role, user.get('team'), user.get('sub_team')):
        raise ValueError(f"User {user.get('id')}: {role} is missing its team or sub_team")


def seed_database(db, data):
    """Write every record in ``data``; returns counts per collection."""
    for user in data.get('users', []):
        check_user_record(user)

    counts = {}
    for name in SEEDED_COLLECTIONS:
        records = data.get(name, [])
        collection = db.collection(name)
        for record in records:
            record = dict(record)
            doc_id = record.pop('id')
            if name == 'users':
                record['role'] = normalize_role(record.get('role'))
            collection.document(doc_id).set(record)
        counts[name] = len(records)
        logger.info(f"Seeded {len(records)} {name}")
    return counts


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print(__doc__)
        return 1

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    if not init_firebase():
        logger.error("Firebase is not configured; nothing seeded")
        return 1

    with open(argv[0], 'r') as f:
        data = json.load(f)

    seed_database(firestore.client(), data)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
