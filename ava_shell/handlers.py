"""Built-in command tables for the info, keystore, avm and platform contexts.

Each handler class lists its commands explicitly in ``commands()``; the
registry never inspects the class for methods. A row without a definition
is dispatched with the raw tokens.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from rich.console import Console
from rich.table import Table

from .command_spec import CommandDefinition, FieldSpec, TypeTag
from .errors import ShellError
from .logger import get_logger
from .output import ACCENT, DIM, SUCCESS, WARN
from .pending import OperationReceipt
from .registry import HandlerTable
from .sanitizer import to_wire
from .session import KeystoreUser, PromptQuestion, ShellSession

_log = get_logger(__name__)

DEFAULT_ASSET = "AVA"

# Hidden fields; a definition carrying both is filled from the active user.
_USER = FieldSpec("username", "keystore user")
_PASSWORD = FieldSpec("password", "keystore password")


def _field(name: str, desc: str, type: TypeTag = TypeTag.PLAIN_TEXT, optional: bool = False) -> FieldSpec:
    return FieldSpec(name=name, description=desc, type=type, required=not optional)


def _define(context: str, name: str, desc: str, *fields: FieldSpec,
            output: Optional[TypeTag] = None) -> CommandDefinition:
    return CommandDefinition(context=context, name=name, description=desc,
                             fields=tuple(fields), output_type=output)


class _Handlers:
    CONTEXT = ""

    def __init__(self, client, session: ShellSession, console: Console):
        self.client = client
        self.session = session
        self.console = console

    def _define(self, name: str, desc: str, *fields: FieldSpec,
                output: Optional[TypeTag] = None) -> CommandDefinition:
        return _define(self.CONTEXT, name, desc, *fields, output=output)

    def commands(self) -> List[tuple]:
        raise NotImplementedError


class InfoCommands(_Handlers):
    CONTEXT = "info"

    def commands(self):
        return [
            ("nodeId", self.node_id, None),
        ]

    def node_id(self):
        if self.client.node_id is None:
            self.client.connect()
        return self.client.node_id


class KeystoreCommands(_Handlers):
    CONTEXT = "keystore"

    def commands(self):
        return [
            ("listUsers", self.list_users, None),
            ("createUser", self.create_user, self._define(
                "createUser", "Creates a user in the node's database.",
                _field("user", "name of the new keystore user"),
                _field("pass", "password; prompted for when omitted", optional=True),
            )),
            ("setUser", self.set_user, self._define(
                "setUser", "Sets the active user for future avm and platform commands",
                _field("user", "keystore user name"),
                _field("pass", "password; prompted for when omitted", optional=True),
            )),
        ]

    def list_users(self):
        usernames = self.client.list_users()
        if not usernames:
            return "No users found"
        self.console.print(f"{len(usernames)} users found:")
        return "\n".join(usernames)

    def _ask_password(self, confirm: bool) -> Optional[str]:
        questions = [PromptQuestion("Password", secret=True)]
        if confirm:
            questions.append(PromptQuestion("Confirm password", secret=True))
        if not self.session.ask(questions):
            return None
        if confirm and questions[0].answer != questions[1].answer:
            raise ShellError("Passwords do not match")
        return questions[0].answer

    def create_user(self, user: str, password: Optional[str] = None):
        if password is None:
            password = self._ask_password(confirm=True)
            if password is None:
                return "Cancelled"
        self.client.create_user(user, password)
        self.session.keystore.add_user(KeystoreUser(user, password))
        _log.info("created user: %s", user)
        return f"Created user {user}"

    def set_user(self, user: str, password: Optional[str] = None):
        if password is None:
            cached = self.session.keystore.get_user(user)
            if cached is not None and cached.password is not None:
                password = cached.password
            else:
                password = self._ask_password(confirm=False)
                if password is None:
                    return "Cancelled"
        self.session.keystore.add_user(KeystoreUser(user, password), set_active=True)
        return f"Active user: {user}"


class AvmCommands(_Handlers):
    CONTEXT = "avm"

    def commands(self):
        d = self._define
        return [
            ("importAva", self.import_ava, d(
                "importAva", "Finalize a transfer of AVA from the P-Chain to the X-Chain.",
                _USER, _PASSWORD, _field("dest", "X-Chain address to credit"),
            )),
            ("exportAva", self.export_ava, d(
                "exportAva", "Send AVA from the X-Chain to an account on the P-Chain.",
                _USER, _PASSWORD, _field("dest", "P-Chain account"),
                _field("amount", "amount in nAVA", TypeTag.BIG_INTEGER),
            )),
            ("listAddresses", self.list_addresses, d(
                "listAddresses", "List the addresses controlled by the active user",
                _USER, _PASSWORD,
            )),
            ("listBalances", self.list_balances, d(
                "listBalances", "Show the balances of every address of the active user",
                _USER, _PASSWORD,
            )),
            ("createAddress", self.create_address, d(
                "createAddress", "Create a new address controlled by the active user",
                _USER, _PASSWORD,
            )),
            ("getBalance", self.get_balance, d(
                "getBalance", "Get the balance of an asset in an account",
                _field("address", "X-Chain address"),
                _field("asset", "asset ID or alias, AVA by default", optional=True),
            )),
            ("getAllBalances", self.get_all_balances, d(
                "getAllBalances", "Get the balance of all assets in an account",
                _field("address", "X-Chain address"),
            )),
            ("send", self.send, d(
                "send", "Sends asset from an address managed by this node's keystore to a destination address",
                _USER, _PASSWORD,
                _field("fromAddress", "source address"),
                _field("toAddress", "destination address"),
                _field("amount", "amount in the asset's smallest unit", TypeTag.BIG_INTEGER),
                _field("asset", "asset ID or alias, AVA by default", optional=True),
            )),
            ("checkTx", self.check_tx, d(
                "checkTx", "Check the status of a transaction id",
                _field("txId", "transaction ID"),
            )),
            ("listTxs", self.list_txs, d(
                "listTxs", "Show the status of transactions submitted in this session",
            )),
        ]

    def _submitted(self, result: Any) -> OperationReceipt:
        tx_id = result.get("txID") if isinstance(result, dict) else result
        if not tx_id:
            raise ShellError("Node returned no transaction id")
        self.console.print(f"[{DIM}]Submitted transaction[/{DIM}]")
        return OperationReceipt(str(tx_id))

    def import_ava(self, username, password, dest):
        res = self.client.call("avm", "importAVA", {
            "username": username, "password": password, "to": dest,
        })
        return self._submitted(res)

    def export_ava(self, username, password, dest, amount):
        res = self.client.call("avm", "exportAVA", {
            "username": username, "password": password, "to": dest, "amount": to_wire(amount),
        })
        return self._submitted(res)

    def _addresses(self, username, password) -> List[str]:
        res = self.client.call("avm", "listAddresses", {"username": username, "password": password})
        return (res or {}).get("addresses", [])

    def list_addresses(self, username, password):
        addresses = self._addresses(username, password)
        self.console.print(f"Addresses for keystore: {username}")
        if not addresses:
            return "None found"
        return "\n".join(addresses)

    def list_balances(self, username, password):
        addresses = self._addresses(username, password)
        self.console.print(f"Addresses for keystore: {username}")
        if not addresses:
            return "None found"
        return {address: self.get_all_balances(address) for address in addresses}

    def create_address(self, username, password):
        res = self.client.call("avm", "createAddress", {"username": username, "password": password})
        return f"Created Address: {(res or {}).get('address')}"

    def get_balance(self, address, asset=None):
        asset = asset or DEFAULT_ASSET
        res = self.client.call("avm", "getBalance", {"address": address, "assetID": asset})
        balance = int((res or {}).get("balance", 0))
        return f"Balance on {address} for asset {asset}: {balance}"

    def get_all_balances(self, address):
        res = self.client.call("avm", "getAllBalances", {"address": address})
        return (res or {}).get("balances", [])

    def send(self, username, password, from_address, to_address, amount, asset=None):
        res = self.client.call("avm", "send", {
            "username": username,
            "password": password,
            "assetID": asset or DEFAULT_ASSET,
            "amount": to_wire(amount),
            "to": to_address,
            "from": [from_address],
        })
        return self._submitted(res)

    def check_tx(self, tx_id):
        return f"Transaction state: {self.client.get_tx_status(tx_id)}"

    def list_txs(self):
        ops = self.session.pending.list()
        if not ops:
            return "No transactions submitted"

        now = datetime.now(timezone.utc)
        table = Table(title="Submitted transactions", title_justify="left", box=None, padding=(0, 2))
        table.add_column("ID", style=f"bold {ACCENT}")
        table.add_column("Submitted", style=DIM)
        table.add_column("State")
        for op in ops:
            age = int((now - op.submitted_at).total_seconds())
            style = SUCCESS if op.state.value == "Accepted" else WARN
            table.add_row(op.id, f"{age}s ago", f"[{style}]{op.state.value}[/{style}]")
        self.console.print(table)
        return None


class PlatformCommands(_Handlers):
    CONTEXT = "platform"

    def commands(self):
        d = self._define
        return [
            ("createAccount", self.create_account, d(
                "createAccount", "Create a P-Chain account controlled by the active user",
                _USER, _PASSWORD,
            )),
            ("listAccounts", self.list_accounts, d(
                "listAccounts", "List the P-Chain accounts of the active user",
                _USER, _PASSWORD,
            )),
            ("getAccount", self.get_account, d(
                "getAccount", "Fetch P-Chain account by address",
                _field("address", "P-Chain account address"),
            )),
            ("importAva", self.import_ava, d(
                "importAva", "Finalize a transfer of AVA from the X-Chain to the P-Chain.",
                _USER, _PASSWORD,
                _field("dest", "P-Chain account"),
                _field("payerNonce", "next nonce of the paying account", TypeTag.BIG_INTEGER, optional=True),
            )),
            ("exportAva", self.export_ava, d(
                "exportAva", "Send AVA from an account on the P-Chain to an address on the X-Chain.",
                _field("amount", "amount in nAVA", TypeTag.BIG_INTEGER),
                _field("x-dest", "X-Chain address, with or without the X- prefix"),
                _field("payerNonce", "next nonce of the paying account", TypeTag.BIG_INTEGER),
            )),
            ("issueTx", self.issue_tx, d(
                "issueTx", "Issue a transaction to the platform chain",
                _field("tx", "signed transaction"),
            )),
            ("addDefaultSubnetValidator", self.add_default_subnet_validator, d(
                "addDefaultSubnetValidator",
                "Add current node to default subnet (sign and issue the transaction)",
                _USER, _PASSWORD,
                _field("destination", "P-Chain account paying the stake"),
                _field("stakeAmount", "stake in nAVA", TypeTag.BIG_INTEGER),
                _field("endTimeDays", "days until the validation period ends"),
            )),
            ("getPendingValidators", self.get_pending_validators, d(
                "getPendingValidators",
                "List pending validator set for a subnet, or the Default Subnet if no subnetId is specified",
                _field("subnetId", "subnet ID", optional=True),
            )),
            ("getCurrentValidators", self.get_current_validators, d(
                "getCurrentValidators",
                "List current validator set for a subnet, or the Default Subnet if no subnetId is specified",
                _field("subnetId", "subnet ID", optional=True),
            )),
        ]

    def create_account(self, username, password):
        res = self.client.call("platform", "createAccount", {"username": username, "password": password})
        return f"Created platform account: {(res or {}).get('address')}"

    def list_accounts(self, username, password):
        res = self.client.call("platform", "listAccounts", {"username": username, "password": password})
        accounts = (res or {}).get("accounts", [])
        if not accounts:
            return "No accounts found"
        return accounts

    def get_account(self, address):
        return self.client.call("platform", "getAccount", {"address": address})

    def next_payer_nonce(self, address) -> int:
        account = self.get_account(address)
        if not account:
            raise ShellError(f"Cannot find account {address}")
        return int(account["nonce"]) + 1

    def import_ava(self, username, password, dest, payer_nonce=None):
        if payer_nonce is None:
            payer_nonce = self.next_payer_nonce(dest)
        res = self.client.call("platform", "importAVA", {
            "username": username, "password": password, "to": dest, "payerNonce": int(payer_nonce),
        })
        self.console.print(f"[{DIM}]Issuing Transaction...[/{DIM}]")
        return self.issue_tx((res or {}).get("tx"))

    def export_ava(self, amount, dest, payer_nonce):
        # Strip an "X-" chain prefix.
        if "-" in dest:
            dest = dest.split("-", 1)[1]
        res = self.client.call("platform", "exportAVA", {
            "amount": to_wire(amount), "to": dest, "payerNonce": int(payer_nonce),
        })
        self.console.print(f"[{DIM}]Issuing Transaction...[/{DIM}]")
        return self.issue_tx((res or {}).get("unsignedTx"))

    def issue_tx(self, tx):
        res = self.client.call("platform", "issueTx", {"tx": tx})
        return f"result txId: {(res or {}).get('txID')}"

    def add_default_subnet_validator(self, username, password, destination, stake_amount, end_time_days):
        try:
            days = int(end_time_days)
        except ValueError:
            raise ShellError(f"Invalid number of days: {end_time_days}")

        now = datetime.now(timezone.utc).replace(second=0, microsecond=0)
        start_time = now + timedelta(minutes=1)
        end_time = now + timedelta(days=days)
        if self.client.node_id is None:
            self.client.connect()

        unsigned = self.client.call("platform", "addDefaultSubnetValidator", {
            "id": self.client.node_id,
            "startTime": to_wire(start_time),
            "endTime": to_wire(end_time),
            "stakeAmount": to_wire(stake_amount),
            "payerNonce": self.next_payer_nonce(destination),
            "destination": destination,
        })
        self.console.print(f"[{DIM}]Signing transaction...[/{DIM}]")
        signed = self.client.call("platform", "sign", {
            "tx": (unsigned or {}).get("unsignedTx"),
            "signer": destination,
            "username": username,
            "password": password,
        })
        self.console.print(f"[{DIM}]Issuing signed transaction...[/{DIM}]")
        return self.issue_tx((signed or {}).get("tx"))

    def get_pending_validators(self, subnet_id=None):
        params = {"subnetID": subnet_id} if subnet_id else {}
        return self.client.call("platform", "getPendingValidators", params)

    def get_current_validators(self, subnet_id=None):
        params = {"subnetID": subnet_id} if subnet_id else {}
        return self.client.call("platform", "getCurrentValidators", params)


HANDLER_CLASSES = (InfoCommands, KeystoreCommands, AvmCommands, PlatformCommands)


def build_handler_tables(client, session: ShellSession, console: Console) -> List[HandlerTable]:
    return [HandlerTable(cls.CONTEXT, cls(client, session, console)) for cls in HANDLER_CLASSES]
