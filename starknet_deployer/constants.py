"""Constants used across the project."""

from starkware.cairo.lang.cairo_constants import DEFAULT_PRIME

FIELD_PRIME = DEFAULT_PRIME
FELT_HEX_WIDTH = 64
# Contract addresses are reduced modulo this bound
ADDRESS_UPPER_BOUND = 2**251 - 256

# Address of the Universal Deployer Contract (OpenZeppelin 0.5.0), identical on all public networks
DEFAULT_UDC_ADDRESS = 0x041A78E741E5AF2FEC34B695679BC6891742439F7AFB8484ECD7766661AD02BF

# starkware.starknet.public.abi.get_selector_from_name("deployContract")
UDC_DEPLOY_SELECTOR_NAME = "deployContract"

FEE_TOKEN_SYMBOL = "ETH"
FEE_TOKEN_DECIMALS = 18

# estimated fee is multiplied by 3/2 before being used as max fee
FEE_BUFFER_NUMERATOR = 3
FEE_BUFFER_DENOMINATOR = 2

SUPPORTED_TX_VERSION = 1
QUERY_VERSION_BASE = 2**128
QUERY_TX_VERSION = QUERY_VERSION_BASE + SUPPORTED_TX_VERSION

DEFAULT_BLOCK_ID = "pending"

DEFAULT_WATCH_INTERVAL = 10  # seconds
SEARCH_REPORT_EVERY = 10_000  # salts
