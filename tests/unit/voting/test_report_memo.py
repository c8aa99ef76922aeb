import asyncio

import pytest

from voting.models.call import AccountType, AddressInfo
from voting.report_memo import ReportAbiSource, ReportMemo

ADDRESS = "0x" + "44" * 20
# EIP-55 test vector, all caps once checksummed
UPPER = "0x52908400098527886E0F7030069857D2E4169EE7"


class CountingLookups:
    def __init__(self, fail_first: bool = False):
        self.classified = []
        self.resolved = []
        self.fail_first = fail_first

    async def classify(self, address):
        self.classified.append(address)
        await asyncio.sleep(0.01)
        if self.fail_first and len(self.classified) == 1:
            raise ConnectionError("flaky node")
        return AddressInfo(address=address, type=AccountType.EOA)

    async def resolve(self, address):
        self.resolved.append(address)
        await asyncio.sleep(0.01)
        return None


@pytest.mark.asyncio
async def test_concurrent_lookups_share_one_pending_call():
    lookups = CountingLookups()
    memo = ReportMemo(lookups.resolve, lookups.classify)

    infos = await asyncio.gather(*(memo.classify(ADDRESS) for _ in range(5)))
    interfaces = await asyncio.gather(*(memo.resolve(ADDRESS) for _ in range(3)))

    assert lookups.classified == [ADDRESS]
    assert lookups.resolved == [ADDRESS]
    assert all(info.address == ADDRESS for info in infos)
    assert interfaces == [None, None, None]


@pytest.mark.asyncio
async def test_address_case_does_not_split_the_cache():
    lookups = CountingLookups()
    memo = ReportMemo(lookups.resolve, lookups.classify)

    await memo.classify(UPPER.lower())
    await memo.classify(UPPER)

    assert lookups.classified == [UPPER]


@pytest.mark.asyncio
async def test_failed_lookup_is_not_cached():
    lookups = CountingLookups(fail_first=True)
    memo = ReportMemo(lookups.resolve, lookups.classify)

    with pytest.raises(ConnectionError):
        await memo.classify(ADDRESS)
    info = await memo.classify(ADDRESS)

    assert info.type == AccountType.EOA
    assert len(lookups.classified) == 2


@pytest.mark.asyncio
async def test_memos_do_not_share_entries():
    lookups = CountingLookups()

    async with ReportMemo(lookups.resolve, lookups.classify) as first:
        await first.classify(ADDRESS)
    async with ReportMemo(lookups.resolve, lookups.classify) as second:
        await second.classify(ADDRESS)

    assert lookups.classified == [ADDRESS, ADDRESS]


@pytest.mark.asyncio
async def test_closed_memo_rejects_lookups():
    lookups = CountingLookups()
    async with ReportMemo(lookups.resolve, lookups.classify) as memo:
        await memo.resolve(ADDRESS)

    assert memo.closed
    with pytest.raises(RuntimeError):
        await memo.resolve(ADDRESS)


class CountingAbiSource:
    def __init__(self, abi=None):
        self.abi = abi
        self.requests = []

    async def get_interface(self, address):
        self.requests.append(address)
        await asyncio.sleep(0.01)
        return self.abi


@pytest.mark.asyncio
async def test_interface_and_verification_share_one_request():
    source = CountingAbiSource(abi=[])
    abi_source = ReportAbiSource(source)

    abi, verified = await asyncio.gather(
        abi_source.get_interface(ADDRESS), abi_source.get_verification_status(ADDRESS)
    )

    assert abi == []
    assert verified is True
    assert source.requests == [ADDRESS]


@pytest.mark.asyncio
async def test_unverified_address_reports_not_verified():
    source = CountingAbiSource(abi=None)

    async with ReportAbiSource(source) as abi_source:
        assert await abi_source.get_verification_status(UPPER.lower()) is False
        assert await abi_source.get_interface(UPPER) is None

    assert source.requests == [UPPER]
    with pytest.raises(RuntimeError):
        await abi_source.get_interface(UPPER)


@pytest.mark.asyncio
async def test_closing_cancels_lookups_in_flight():
    lookups = CountingLookups()
    memo = ReportMemo(lookups.resolve, lookups.classify)

    pending = asyncio.ensure_future(memo.classify(ADDRESS))
    await asyncio.sleep(0)
    await memo.close()

    with pytest.raises(asyncio.CancelledError):
        await pending
    assert memo.closed
