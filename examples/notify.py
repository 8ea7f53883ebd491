#!/usr/bin/env python3
"""
Notify — hand a notification to the gateway like the notification service does.

Run with: python examples/notify.py alice COMMENT_CREATE '{"postId": 7, "body": "nice"}'
          python examples/notify.py alice POST_LIKE '{"id": 42}'

Pair it with `python examples/listen.py alice` in another terminal.
"""

import json
import sys

from _common import create_producer


def main():
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(2)
    target, notification_type, raw = sys.argv[1:]

    client = create_producer()
    resp = client.post(
        "/notifications",
        json={"type": notification_type, "target": target, "data": json.loads(raw)},
    )
    if resp.status_code != 202:
        print(f"ERROR: {resp.status_code} {resp.text}")
        sys.exit(1)

    result = resp.json()
    print(f"\nRelayed as {result['event']} (propagated: {result['propagated']})")


if __name__ == "__main__":
    main()
