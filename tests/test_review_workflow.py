from __future__ import annotations

from decimal import Decimal

import pytest

from gcashpay.errors import StorageError, ValidationError
from gcashpay.models import PaymentClaim
from gcashpay.services.review import ReviewWorkflow, build_payment_note

GCASH_UUID = "4145b5f5-3bbc-45e3-8fc5-9cda970c62fb"


def _claim(cid: str, ref: str, created_at: str, status: str = "pending", amount: str = "250.00", **kw) -> PaymentClaim:
    return PaymentClaim(
        id=cid,
        client_id=kw.pop("client_id", 7),
        client_name="Ana Reyes",
        account_number="ACC100",
        amount=Decimal(amount),
        reference_number=ref,
        status=status,
        created_at=created_at,
        gcash_number="09171234567",
        gcash_name="Juan Dela Cruz",
        **kw,
    )


@pytest.fixture
def seeded(store):
    store.save_all(
        [
            _claim("gcash_a", "REF-A", "2024-05-01 09:00:00"),
            _claim("gcash_b", "REF-B", "2024-05-03 10:00:00", amount="100.50"),
            _claim(
                "gcash_c",
                "REF-C",
                "2024-05-02 11:00:00",
                status="approved",
                amount="500",
                uisp_payment_id=901,
                approved_at="2024-05-02 12:00:00",
                approved_by="@boss",
            ),
            _claim(
                "gcash_d",
                "REF-D",
                "2024-04-30 08:00:00",
                status="rejected",
                amount="75",
                rejected_at="2024-05-01 08:00:00",
                rejected_by="@boss",
            ),
        ]
    )
    return store


def _by_id(store, cid: str) -> PaymentClaim:
    return next(c for c in store.load_all() if c.id == cid)


@pytest.mark.asyncio
async def test_approve_posts_payment_and_records_it(seeded, uisp) -> None:
    wf = ReviewWorkflow(seeded, uisp, {"paymentMethodId": GCASH_UUID})
    result = await wf.approve("gcash_a", "@admin", actor_id=3)

    assert result.ok
    assert result.message == "Payment approved and posted to UISP! Payment ID: pay_1"
    assert uisp.created == [
        {
            "clientId": 7,
            "amount": 250.0,
            "note": "GCash Payment - Ref: REF-A",
            "applyToInvoicesAutomatically": True,
            "userId": 3,
            "methodId": GCASH_UUID,
        }
    ]
    # uuid selector is used as-is
    assert uisp.method_calls == 0

    claim = _by_id(seeded, "gcash_a")
    assert claim.status == "approved"
    assert claim.uisp_payment_id == "pay_1"
    assert claim.approved_by == "@admin"
    assert claim.approved_at
    raw = claim.to_dict()
    assert raw["uispPaymentId"] == "pay_1" and "rejectedAt" not in raw


@pytest.mark.asyncio
async def test_payment_method_resolved_by_name(seeded, uisp) -> None:
    wf = ReviewWorkflow(seeded, uisp, {"paymentMethodId": "gcash"})
    assert (await wf.approve("gcash_a", "@admin")).ok
    assert uisp.created[0]["methodId"] == GCASH_UUID
    assert uisp.method_calls == 1


@pytest.mark.asyncio
async def test_unknown_method_name_is_omitted(seeded, uisp) -> None:
    wf = ReviewWorkflow(seeded, uisp, {"paymentMethodId": "Bank Transfer"})
    assert (await wf.approve("gcash_a", "@admin")).ok
    assert "methodId" not in uisp.created[0]


@pytest.mark.asyncio
async def test_method_lookup_failure_does_not_block_approval(seeded, fake_uisp) -> None:
    api = fake_uisp(fail_methods=True)
    wf = ReviewWorkflow(seeded, api, {"paymentMethodId": "GCash"})
    result = await wf.approve("gcash_a", "@admin")
    assert result.ok
    assert "methodId" not in api.created[0]


@pytest.mark.asyncio
async def test_no_method_configured(seeded, uisp) -> None:
    assert (await ReviewWorkflow(seeded, uisp).approve("gcash_a", "@admin")).ok
    assert "methodId" not in uisp.created[0]
    assert uisp.created[0]["userId"] is None


@pytest.mark.asyncio
async def test_response_without_id_leaves_claim_pending(seeded, fake_uisp) -> None:
    api = fake_uisp(payment_response={"message": "accepted?"})
    before = seeded.path.read_bytes()
    result = await ReviewWorkflow(seeded, api).approve("gcash_a", "@admin")
    assert result.failed
    assert result.message == "Failed to create payment in UISP."
    assert seeded.path.read_bytes() == before


@pytest.mark.asyncio
async def test_api_error_leaves_claim_pending(seeded, fake_uisp) -> None:
    api = fake_uisp(fail_payment=True)
    result = await ReviewWorkflow(seeded, api).approve("gcash_b", "@admin")
    assert result.failed
    assert result.message.startswith("Error: ")
    assert _by_id(seeded, "gcash_b").is_pending


@pytest.mark.asyncio
@pytest.mark.parametrize("cid", ["gcash_c", "gcash_d", "gcash_missing"])
async def test_approve_non_pending_is_ignored(seeded, uisp, cid) -> None:
    before = seeded.path.read_bytes()
    result = await ReviewWorkflow(seeded, uisp).approve(cid, "@admin")
    assert result.ignored
    assert uisp.created == []
    assert seeded.path.read_bytes() == before


@pytest.mark.asyncio
async def test_approved_claim_cannot_be_approved_twice(seeded, uisp) -> None:
    wf = ReviewWorkflow(seeded, uisp)
    assert (await wf.approve("gcash_a", "@admin")).ok
    assert (await wf.approve("gcash_a", "@admin")).ignored
    assert len(uisp.created) == 1


@pytest.mark.asyncio
async def test_reject_then_approve_is_ignored(seeded, uisp) -> None:
    wf = ReviewWorkflow(seeded, uisp)
    result = wf.reject("gcash_b", "@admin")
    assert result.ok and result.message == "Payment rejected."
    claim = _by_id(seeded, "gcash_b")
    assert claim.status == "rejected"
    assert claim.rejected_by == "@admin" and claim.rejected_at
    assert claim.uisp_payment_id is None

    assert (await wf.approve("gcash_b", "@admin")).ignored
    assert wf.reject("gcash_b", "@admin").ignored
    assert uisp.created == []


def test_reject_unknown_is_ignored(seeded, uisp) -> None:
    assert ReviewWorkflow(seeded, uisp).reject("nope", "@admin").ignored


def test_delete_removes_any_status_once(seeded, uisp) -> None:
    wf = ReviewWorkflow(seeded, uisp)
    first = wf.delete("gcash_c")
    assert first.ok and first.message == "Payment record deleted."
    assert [c.id for c in seeded.load_all()] == ["gcash_a", "gcash_b", "gcash_d"]
    assert wf.delete("gcash_c").ignored


def test_list_filters_and_sorts_newest_first(seeded, uisp) -> None:
    wf = ReviewWorkflow(seeded, uisp)
    assert [c.id for c in wf.list_claims()] == ["gcash_b", "gcash_a"]
    assert [c.id for c in wf.list_claims("approved")] == ["gcash_c"]
    assert [c.id for c in wf.list_claims("REJECTED")] == ["gcash_d"]
    assert [c.id for c in wf.list_claims("all")] == ["gcash_b", "gcash_c", "gcash_a", "gcash_d"]


def test_list_unknown_filter(seeded, uisp) -> None:
    with pytest.raises(ValidationError):
        ReviewWorkflow(seeded, uisp).list_claims("paid")


def test_summarize_counts_and_totals(seeded, uisp) -> None:
    summary = ReviewWorkflow(seeded, uisp).summarize()
    assert summary.counts == {"pending": 2, "approved": 1, "rejected": 1, "all": 4}
    assert summary.totals["pending"] == Decimal("350.50")
    assert summary.totals["approved"] == Decimal("500")


def test_summarize_empty_store(store, uisp) -> None:
    summary = ReviewWorkflow(store, uisp).summarize()
    assert summary.counts["all"] == 0
    assert summary.totals["pending"] == Decimal("0")


def test_payment_note() -> None:
    assert build_payment_note("9876543210") == "GCash Payment - Ref: 9876543210"


@pytest.fixture
def corrupt(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_bytes(b"\xff\xfe[]")
    return store


@pytest.mark.asyncio
async def test_transitions_on_corrupt_store_fail_without_writing(corrupt, uisp) -> None:
    wf = ReviewWorkflow(corrupt, uisp)
    results = [await wf.approve("gcash_a", "@admin"), wf.reject("gcash_a", "@admin"), wf.delete("gcash_a")]
    assert all(r.failed for r in results)
    assert all("corrupt" in r.message for r in results)
    assert uisp.created == []
    assert corrupt.path.read_bytes() == b"\xff\xfe[]"


def test_list_on_corrupt_store_raises(corrupt, uisp) -> None:
    with pytest.raises(StorageError):
        ReviewWorkflow(corrupt, uisp).list_claims()


@pytest.mark.asyncio
async def test_save_failure_after_payment_reports_payment_id(seeded, uisp, monkeypatch) -> None:
    def _boom(records) -> None:
        raise StorageError("disk full")

    monkeypatch.setattr(seeded, "save_all", _boom)
    result = await ReviewWorkflow(seeded, uisp).approve("gcash_a", "@admin")
    assert result.failed
    assert "pay_1" in result.message
    assert len(uisp.created) == 1
    assert _by_id(seeded, "gcash_a").is_pending
