"""
Ledger client for the encrypted voting contract.

Wraps the contract's read and write operations behind typed methods. Positional
return tuples are decoded here; network and contract errors are reported as
TransportFailure with the failing method as the step. Writes carry an explicit
gas ceiling and are awaited until mined; a revert is terminal.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3

from .codec import addresses_equal, checksum_address, handle_to_bytes, to_hex, validate_address
from .exceptions import InvalidIdentity, TransportFailure, VotingError
from .models import Proposal
from .types import EncryptedVoteInput, TransactionReceipt, TransactionStatus, VoteCastEvent

logger = logging.getLogger(__name__)

ABI_PATH = os.path.join(os.path.dirname(__file__), "abi", "ZamaVote.json")

DEFAULT_GAS_LIMIT = 5_000_000


def load_abi(path: str = ABI_PATH) -> List[Dict[str, Any]]:
    """Load a contract ABI, accepting bare lists or build artifacts"""
    with open(path) as f:
        abi = json.load(f)
    if isinstance(abi, dict) and "abi" in abi:
        abi = abi["abi"]
    return abi


class LedgerClient:
    """Typed access to the ZamaVote contract over an AsyncWeb3 connection"""

    def __init__(self,
                 w3: AsyncWeb3,
                 contract_address: str,
                 abi: Optional[List[Dict[str, Any]]] = None,
                 account: Optional[LocalAccount] = None,
                 gas_limit: int = DEFAULT_GAS_LIMIT,
                 receipt_timeout: float = 120.0,
                 chain_id: Optional[int] = None):
        self.w3 = w3
        self.contract_address = validate_address(contract_address, field="contract_address")
        self.contract = w3.eth.contract(
            address=checksum_address(self.contract_address),
            abi=abi or load_abi()
        )
        self.account = account
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self.chain_id = chain_id

    @classmethod
    def from_settings(cls, settings, account: Optional[LocalAccount] = None) -> "LedgerClient":
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(settings.rpc_url))
        return cls(
            w3,
            settings.contract_address,
            account=account,
            gas_limit=settings.gas_limit,
            receipt_timeout=settings.receipt_timeout,
            chain_id=settings.chain_id,
        )

    # Reads

    async def get_proposal(self, proposal_id: int) -> Proposal:
        raw = await self._call("getProposal", int(proposal_id))
        return Proposal.from_ledger(raw)

    async def get_all_proposals(self) -> List[int]:
        return [int(i) for i in await self._call("getAllProposals")]

    async def check_if_voted(self, proposal_id: int, voter: str) -> bool:
        voter = checksum_address(validate_address(voter, field="voter"))
        return bool(await self._call("checkIfVoted", int(proposal_id), voter))

    async def proposal_count(self) -> int:
        return int(await self._call("proposalCount"))

    async def get_encrypted_votes(self, proposal_id: int, caller: str) -> Tuple[str, str]:
        """Tally handles; the read is made as caller since access may be restricted"""
        caller = validate_address(caller, field="caller")
        yes_handle, no_handle = await self._call("getEncryptedVotes", int(proposal_id), caller=caller)
        return to_hex(yes_handle), to_hex(no_handle)

    async def get_block_number(self) -> int:
        try:
            return await self.w3.eth.block_number
        except Exception as e:
            raise TransportFailure(str(e), step="block_number") from e

    async def get_vote_cast_events(self, from_block: int, to_block: int) -> List[VoteCastEvent]:
        try:
            logs = await self.contract.events.VoteCast.get_logs(from_block=from_block, to_block=to_block)
        except Exception as e:
            raise TransportFailure(str(e), step="VoteCast") from e

        return [
            VoteCastEvent(
                proposal_id=int(log["args"]["proposalId"]),
                voter=str(log["args"]["voter"]).lower(),
                block_number=int(log["blockNumber"]),
                transaction_hash=to_hex(log["transactionHash"]),
            )
            for log in logs
        ]

    # Writes

    async def create_proposal(self, title: str, description: str,
                              duration_seconds: int, sender: str) -> TransactionReceipt:
        return await self._transact("createProposal", [title, description, int(duration_seconds)], sender)

    async def cast_vote(self, proposal_id: int, encrypted: EncryptedVoteInput,
                        sender: str) -> TransactionReceipt:
        args = [int(proposal_id), handle_to_bytes(encrypted.handle), bytes.fromhex(encrypted.proof[2:])]
        return await self._transact("castVote", args, sender)

    async def _call(self, method: str, *args, caller: Optional[str] = None) -> Any:
        try:
            fn = getattr(self.contract.functions, method)(*args)
            if caller:
                return await fn.call({"from": checksum_address(caller)})
            return await fn.call()
        except Exception as e:
            logger.error(f"Ledger read {method}{args} failed: {e}")
            raise TransportFailure(str(e), step=method) from e

    async def _transact(self, method: str, args: List[Any], sender: str) -> TransactionReceipt:
        sender = checksum_address(validate_address(sender, field="sender"))
        if self.account is not None and not addresses_equal(self.account.address, sender):
            raise InvalidIdentity(
                f"Sender {sender} does not match the configured signing account", step=method
            )

        try:
            fn = getattr(self.contract.functions, method)(*args)
            if self.account is not None:
                tx = await fn.build_transaction({
                    "from": sender,
                    "gas": self.gas_limit,
                    "nonce": await self.w3.eth.get_transaction_count(sender),
                    "chainId": self.chain_id or await self.w3.eth.chain_id,
                })
                signed = self.account.sign_transaction(tx)
                tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                # Node-managed account
                tx_hash = await fn.transact({"from": sender, "gas": self.gas_limit})

            logger.info(f"{method} submitted as {to_hex(tx_hash)}, waiting for confirmation")
            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except VotingError:
            raise
        except Exception as e:
            logger.error(f"Ledger write {method} failed: {e}")
            raise TransportFailure(str(e), step=method) from e

        result = self._build_transaction_receipt(receipt)
        if result.status is not TransactionStatus.CONFIRMED:
            raise TransportFailure(f"Transaction {result.transaction_hash} reverted", step=method)

        logger.info(f"{method} confirmed in block {result.block_number}")
        return result

    @staticmethod
    def _build_transaction_receipt(receipt: Dict[str, Any]) -> TransactionReceipt:
        status = TransactionStatus.CONFIRMED if receipt["status"] == 1 else TransactionStatus.REVERTED
        return TransactionReceipt(
            transaction_hash=to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            status=status,
        )

    async def close(self):
        """Release the provider's HTTP session"""
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
