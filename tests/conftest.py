from decimal import Decimal
from typing import Callable, List

import pytest

from commission_recon.master_index import MasterIndex, build_index
from commission_recon.matcher import match
from commission_recon.models import CarrierStatementRow, MasterRecord, MatchedRow
from commission_recon.splitter import RolePercentageTable


@pytest.fixture
def table() -> RolePercentageTable:
    return RolePercentageTable()


@pytest.fixture
def master_records() -> List[MasterRecord]:
    return [
        MasterRecord(
            billing_item="ABC123",
            account_name="Acme Corp",
            state="TX",
            provider="Zayo",
            role_codes=("RD1", "RD2-05"),
            expected_percent=Decimal("10"),
            account_number="A-100",
            expected_amount=Decimal("25.00"),
        ),
        MasterRecord(
            billing_item="XYZ",
            account_name="Xylo LLC",
            state="CA",
            provider="Lumen",
            role_codes=("RM1",),
        ),
        MasterRecord(
            billing_item="NMR1",
            account_name="Nonrecurring Co",
            state="NY",
            provider="Lumen",
            role_codes=("RD3",),
            billing_type="NRC",
        ),
        MasterRecord(
            billing_item="ZM1",
            account_name="Zmap Co",
            state="FL",
            provider="Zayo",
            role_codes=("RD1",),
            zmap=True,
            billing_type="NRC",
        ),
        MasterRecord(
            billing_item="CAN1",
            account_name="Gone Inc",
            state="OH",
            provider="MetTel",
            role_codes=("OVR",),
            billing_type="MRC",
        ),
    ]


@pytest.fixture
def index(master_records: List[MasterRecord]) -> MasterIndex:
    return build_index(master_records)


@pytest.fixture
def make_row() -> Callable[..., CarrierStatementRow]:
    def _make(billing_item: str, commission, account_name: str = "Acme Corp",
              carrier_name: str = "Zayo", **kwargs) -> CarrierStatementRow:
        return CarrierStatementRow(
            billing_item=billing_item,
            account_name=account_name,
            commission_amount=Decimal(str(commission)),
            carrier_name=carrier_name,
            **kwargs,
        )
    return _make


@pytest.fixture
def matched(index: MasterIndex, table: RolePercentageTable) -> Callable[..., List[MatchedRow]]:
    def _matched(*rows: CarrierStatementRow) -> List[MatchedRow]:
        return match(list(rows), index, table).matched
    return _matched
