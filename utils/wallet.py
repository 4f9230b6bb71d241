from web3 import Web3


def is_valid_address(value) -> bool:
    """True si es una cuenta 0x + 40 hex (checksum validado si viene en mixed-case)."""
    if not isinstance(value, str) or not value.startswith("0x"):
        return False
    return Web3.is_address(value)


def normalize_address(value: str) -> str:
    return value.strip().lower()


def short_address(address: str | None) -> str | None:
    # 0x1234...abcd
    if not address:
        return None
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"
