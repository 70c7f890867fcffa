"""Example: Submit goods-introduction documents under a rate limit.

This script demonstrates how to:
1. Build a Document with its nested description and products
2. Submit it several times through CrptApi limited to 3 requests per second
3. Collect the outcome of every submission through a completion hook

Usage:
    python examples/submit_example.py
"""

import asyncio
from datetime import date

from crptclient import CrptApi, Description, Document, Product, SubmissionOutcome


def create_sample_document() -> Document:
    """Create a sample goods-introduction document.

    Returns:
        Document ready for submission.
    """
    product = Product(
        certificate_document="doc",
        certificate_document_date=date(2024, 2, 12),
        certificate_document_number="num",
        owner_inn="1234567890",
        producer_inn="1234567890",
        production_date=date(2024, 2, 12),
        tnved_code="code",
        uit_code="uit",
        uitu_code="uitu",
    )

    return Document(
        description=Description(participant_inn="12345"),
        doc_id="1234",
        import_request=True,
        owner_inn="1234567890",
        participant_inn="1234567890",
        producer_inn="1234567890",
        production_date=date(2024, 2, 12),
        products=[product],
        reg_date=date(2024, 2, 12),
        reg_number="reg123",
    )


async def main() -> None:
    """Run the submission example."""
    document = create_sample_document()
    print(f"📄 Document payload: {document.to_json()}")

    outcomes: list[SubmissionOutcome] = []

    async with CrptApi("seconds", request_limit=3) as api:
        print("\n🔄 Submitting 5 documents (3 per second)...")
        for _ in range(5):
            api.submit(document, "signature", on_complete=outcomes.append)

    print("\n📋 Outcomes:")
    for outcome in sorted(outcomes, key=lambda o: o.task_id):
        detail = outcome.status_code if outcome.status_code is not None else outcome.error
        print(f"  #{outcome.task_id}: {outcome.status} ({detail})")


if __name__ == "__main__":
    asyncio.run(main())
