"""Web3 chain gateway - signs with a local key and talks JSON-RPC over HTTP."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from eth_account import Account
from eth_utils import to_checksum_address
from hexbytes import HexBytes
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound

from rankdrop.errors import ConfirmationTimeout, GatewayError, TransactionReverted
from rankdrop.models.chain import ContractRef, PendingTx, RawLog, Receipt

log = logging.getLogger(__name__)


def _hex(value: Any) -> str:
    return HexBytes(value).to_0x_hex()


def to_receipt(raw: Mapping[str, Any]) -> Receipt:
    """Convert a web3 receipt (AttributeDict) into our Receipt record."""
    logs = tuple(
        RawLog(
            address=to_checksum_address(entry["address"]),
            topics=tuple(bytes(HexBytes(t)) for t in entry["topics"]),
            data=bytes(HexBytes(entry["data"])),
            log_index=int(entry["logIndex"]),
        )
        for entry in raw.get("logs", [])
    )
    contract_address = raw.get("contractAddress")
    return Receipt(
        tx_hash=_hex(raw["transactionHash"]),
        status=int(raw["status"]) == 1,
        block_number=int(raw["blockNumber"]),
        logs=logs,
        contract_address=to_checksum_address(contract_address) if contract_address else None,
    )


class Web3ChainGateway:
    """ChainGateway backed by AsyncWeb3 and an eth_account local signer.

    Nonces come from the pending transaction count, so a submission that
    timed out without landing is replaced rather than skipped.

    Gas estimation executes the call first, so a call the contract would
    reject fails before anything is broadcast. Exceptions listed in
    ``revert_errors`` are reported as TransactionReverted with no receipt.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        chain_id: int | None = None,
        receipt_timeout: float = 120.0,
        poll_latency: float = 1.0,
        w3: AsyncWeb3 | None = None,
        revert_errors: tuple[type[Exception], ...] = (ContractLogicError,),
    ) -> None:
        self._w3 = w3 if w3 is not None else AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._revert_errors = revert_errors
        self._account = Account.from_key(private_key)
        self._chain_id = chain_id
        self._receipt_timeout = receipt_timeout
        self._poll_latency = poll_latency
        self._rpc_url = rpc_url

    @property
    def signer(self) -> str:
        return self._account.address

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self._w3.provider.disconnect()

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._w3.eth.chain_id
        return self._chain_id

    def _contract(self, target: ContractRef):
        return self._w3.eth.contract(address=to_checksum_address(target.address), abi=target.abi)

    async def _tx_params(self) -> dict[str, Any]:
        return {
            "from": self._account.address,
            "nonce": await self._w3.eth.get_transaction_count(self._account.address, "pending"),
            "chainId": await self.chain_id(),
        }

    async def _send(self, tx: dict[str, Any], method: str, target: str) -> PendingTx:
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        log.debug("Broadcast %s nonce=%s (tx=%s)", method, tx.get("nonce"), _hex(tx_hash))
        return PendingTx(tx_hash=_hex(tx_hash), method=method, target=target)

    async def submit(
        self, target: ContractRef, method: str, args: Sequence[Any]
    ) -> PendingTx:
        try:
            fn = self._contract(target).functions[method](*args)
            tx = await fn.build_transaction(await self._tx_params())
            return await self._send(tx, method, target.address)
        except self._revert_errors as exc:
            log.error("%s on %s rejected during gas estimation: %s", method, target.address, exc)
            raise TransactionReverted(
                f"Call reverted before broadcast: {exc}", method=method, address=target.address,
            ) from exc
        except (ConnectionError, OSError) as exc:
            raise GatewayError(f"Submitting {method} to {target.address} failed: {exc}") from exc

    async def deploy(
        self, abi: list[dict[str, Any]], bytecode: str, args: Sequence[Any]
    ) -> PendingTx:
        if not bytecode or bytecode == "0x":
            raise GatewayError("Cannot deploy: artifact has no bytecode")
        try:
            factory = self._w3.eth.contract(abi=abi, bytecode=bytecode)
            tx = await factory.constructor(*args).build_transaction(await self._tx_params())
            return await self._send(tx, "constructor", "")
        except self._revert_errors as exc:
            log.error("Constructor rejected during gas estimation: %s", exc)
            raise TransactionReverted(
                f"Deployment reverted before broadcast: {exc}", method="constructor", address="",
            ) from exc
        except (ConnectionError, OSError) as exc:
            raise GatewayError(f"Deployment failed: {exc}") from exc

    async def await_mined(self, pending: PendingTx) -> Receipt:
        try:
            raw = await self._w3.eth.wait_for_transaction_receipt(
                HexBytes(pending.tx_hash),
                timeout=self._receipt_timeout,
                poll_latency=self._poll_latency,
            )
        except TimeExhausted as exc:
            raise ConfirmationTimeout(
                str(exc), method=pending.method, address=pending.target, tx_hash=pending.tx_hash,
            ) from exc
        return to_receipt(raw)

    async def get_receipt(self, tx_hash: str) -> Receipt:
        try:
            raw = await self._w3.eth.get_transaction_receipt(HexBytes(tx_hash))
        except TransactionNotFound as exc:
            raise GatewayError(f"No receipt for {tx_hash}") from exc
        return to_receipt(raw)

    async def call(
        self, target: ContractRef, method: str, args: Sequence[Any]
    ) -> Any:
        try:
            return await self._contract(target).functions[method](*args).call()
        except (ConnectionError, OSError, *self._revert_errors) as exc:
            raise GatewayError(f"{method}() on {target.address} failed: {exc}") from exc
