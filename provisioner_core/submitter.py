"""
provisioner_core.submitter
--------------------------
Authorized actions and table reads on top of a ResilientNodeClient.

Every action carries two authorizations: the resource payer
(``res.xsat@res`` by default) that covers CPU/NET, and the signing identity's
own ``active`` permission.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import json, re

from provisioner_core.client import ResilientNodeClient
from provisioner_core.errors import InvalidAddressError
from provisioner_core.logger import get_logger
from provisioner_core.utils import strip_0x, truncate

log = get_logger("PROV.Submitter")

EVM_ADDRESS_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")
VALIDATOR_ROLE = "1"
DEFAULT_PAGE_SIZE = 10


@dataclass
class AccountInfo:
    account: str
    owner_key: Optional[str]


def validate_evm_address(address: str) -> str:
    """Return the raw 40-hex form of an EVM address, with or without 0x."""
    if not isinstance(address, str) or not EVM_ADDRESS_RE.match(address):
        raise InvalidAddressError(f"Invalid EVM address format: {address!r}")
    return strip_0x(address)


class TransactionSubmitter:
    def __init__(
        self,
        client: ResilientNodeClient,
        resource_payer: str = "res.xsat",
        resource_permission: str = "res",
        expire_seconds: int = 30,
        endorse_contract: str = "endrmng.xsat",
        account_suffix: str = ".sat",
        reward_address: str = "",
    ):
        self.client = client
        self.resource_payer = resource_payer
        self.resource_permission = resource_permission
        self.expire_seconds = expire_seconds
        self.endorse_contract = endorse_contract
        self.account_suffix = account_suffix
        self.reward_address = reward_address

    @classmethod
    def from_config(cls, config, client: ResilientNodeClient) -> "TransactionSubmitter":
        return cls(
            client,
            resource_payer=config.resource_payer,
            resource_permission=config.resource_permission,
            expire_seconds=config.expire_seconds,
            endorse_contract=config.endorse_contract,
            account_suffix=config.account_suffix,
            reward_address=config.reward_address,
        )

    @property
    def actor(self) -> str:
        return self.client.account_name

    def authorization(self) -> List[Dict[str, str]]:
        return [
            {"actor": self.resource_payer, "permission": self.resource_permission},
            {"actor": self.actor, "permission": "active"},
        ]

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def submit_action(self, account: str, name: str, data: Dict[str, Any], show_log: bool = True) -> Dict[str, Any]:
        """
        Submit one action with retry/rotation.

        A retry re-broadcasts the same action; see ResilientNodeClient for the
        idempotency this requires of ``data``.
        """
        action = {
            "account": account,
            "name": name,
            "authorization": self.authorization(),
            "data": data,
        }
        try:
            return self.client.with_retry(lambda session: session.transact([action], self.expire_seconds))
        except Exception as e:
            if show_log:
                data_str = truncate(json.dumps(data, default=str), 500)
                log.error(f"[SUBMIT] Transaction failed, account: {account}, name: {name}, data: {data_str} error: {e}")
            raise

    def register_validator(self, identity: str, reward_address: Optional[str] = None) -> Dict[str, Any]:
        """Register ``identity`` with stake and reward both set to the EVM reward address."""
        raw = validate_evm_address(reward_address or self.reward_address)
        return self.submit_action(self.endorse_contract, "newregvldtor", {
            "validator": identity,
            "role": VALIDATOR_ROLE,
            "stake_addr": raw,
            "reward_addr": raw,
            "commission_rate": None,
        })

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_table_rows(
        self,
        code: str,
        scope,
        table: str,
        limit: int = DEFAULT_PAGE_SIZE,
        lower_bound=None,
        upper_bound=None,
        index_position: Optional[str] = None,
        key_type: Optional[str] = None,
        fetch_all: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Read table rows; with ``fetch_all`` follow next_key until ``more`` is
        false. The whole walk is one retry unit and restarts from
        ``lower_bound`` after a node switch.
        """

        def walk(session) -> List[Dict[str, Any]]:
            rows: List[Dict[str, Any]] = []
            cursor = lower_bound
            while True:
                result = session.get_table_rows(
                    code=code,
                    scope=str(scope),
                    table=table,
                    limit=limit,
                    lower_bound=cursor,
                    upper_bound=upper_bound,
                    index_position=index_position,
                    key_type=key_type,
                    reverse=False,
                    show_payer=False,
                )
                rows.extend(result.get("rows", []))
                if not (fetch_all and result.get("more")):
                    return rows
                cursor = result.get("next_key")
                if cursor in (None, ""):
                    # no continuation key; following it would restart at page one
                    log.warning(f"[TABLE] {code}/{table} reports more rows without next_key; stopping")
                    return rows

        return self.client.with_retry(walk)

    def get_account(self, name: str) -> Optional[AccountInfo]:
        name = name if name.endswith(self.account_suffix) else f"{name}{self.account_suffix}"
        data = self.client.with_retry(lambda session: session.get_account(name))
        if not data:
            return None
        owner = next((p for p in data.get("permissions", []) if p.get("perm_name") == "owner"), None)
        keys = owner["required_auth"]["keys"] if owner else []
        return AccountInfo(account=data.get("account_name", name), owner_key=keys[0]["key"] if keys else None)

    def is_validator_registered(self, identity: str) -> bool:
        rows = self.get_table_rows(
            self.endorse_contract, self.endorse_contract, "validators",
            limit=1, lower_bound=identity, upper_bound=identity,
        )
        return any(row.get("owner") == identity for row in rows)
