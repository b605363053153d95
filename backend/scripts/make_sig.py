#!/usr/bin/env python3
"""Sign a webhook body the way Stripe does and print the Stripe-Signature header.

    make_sig.py whsec_... event.json
    curl localhost:4242/webhook --data-binary @event.json \
        -H "Content-Type: application/json" \
        -H "Stripe-Signature: $(make_sig.py whsec_... event.json)"

The body is signed byte for byte, so send the file with --data-binary.
"""

import argparse
import sys

from accept_a_payment.services.stripe_verify import make_signature_header


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("secret", help="webhook signing secret (whsec_...)")
    parser.add_argument(
        "body",
        nargs="?",
        type=argparse.FileType("rb"),
        default=sys.stdin.buffer,
        help="file holding the event body (default: stdin)",
    )
    parser.add_argument("--timestamp", type=int, help="signing time, unix seconds")
    args = parser.parse_args(argv)

    print(make_signature_header(args.body.read(), args.secret, args.timestamp))
    return 0


if __name__ == "__main__":
    sys.exit(main())
