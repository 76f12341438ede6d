"""
Terminal version of the checkout success page.

    python scripts/poll_fulfillment.py cs_demo_3 --base-url http://localhost:8000
"""
import argparse
import asyncio
import os
import sys

# Allow running from project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gifty.client.http import FulfillmentClient
from gifty.client.poller import (
    ERROR, MISSING_RECIPIENT, PENDING, SENDING, SENT, FulfillmentPoller, PollState,
)
from gifty.core.settings import get_settings


def render(state: PollState) -> None:
    if state.status in (SENDING, PENDING):
        label = "Sending your gift..." if state.status == SENDING else "Finalizing your gift..."
        print(f"{label} (try {state.attempt}/{state.max_attempts})")
    elif state.status == SENT:
        gift = state.gift or {}
        print(f"Your gift has been emailed to {state.sent_to}")
        print(f"  code:     {gift.get('code')}")
        print(f"  business: {gift.get('business_name')}")
        print(f"  amount:   {gift.get('amount')} {gift.get('currency')}")
        print(f"  view:     {gift.get('redeem_url')}")
    elif state.status == MISSING_RECIPIENT:
        print("We found your gift but there's no recipient email on file.")
        print(f"  {state.error}")
        if state.gift:
            print(f"  code: {state.gift.get('code')}")
    elif state.status == ERROR:
        print("There was a problem sending your gift.")
        print(f"  {state.error}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("session_id", help="Checkout session id from the success URL")
    parser.add_argument("--base-url", default="http://localhost:8000", help="Fulfillment API base URL")
    parser.add_argument("--retries", type=int, default=0, help="Manual retries after a terminal failure")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    async with FulfillmentClient(args.base_url) as client:
        poller = FulfillmentPoller.from_settings(client, settings, on_state=render)
        state = await poller.start(args.session_id)
        retries = args.retries
        while state.status in (ERROR, MISSING_RECIPIENT) and retries > 0:
            retries -= 1
            print("Trying again...")
            state = await poller.retry()
    return 0 if state.status == SENT else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
