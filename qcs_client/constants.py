"""Limits, defaults and file names shared by the request and result code."""

# maximum number of samples allowed
MAX_SAMPLES = 2**16

# default value for the number of samples
DEFAULT_SAMPLES = 1000

# minimum and maximum bond and entangling dimensions
MIN_BONDDIM = 1
MAX_BONDDIM = 2**12
MIN_ENTDIM = 4
MAX_ENTDIM = 64

DEFAULT_BONDDIM = 256
DEFAULT_ENTDIM = 16

# time limits are in minutes
DEFAULT_TIME_LIMIT = 5
DEFAULT_MAX_TIME_LIMIT = 30

DEFAULT_ALGORITHM = "auto"

# seconds between two status checks
DEFAULT_POLL_INTERVAL = 1.0

# executor name and job type understood by the service
EXECUTOR = "Circuits"
JOB_TYPE = "CIRC"

REQUEST_FILE = "request.json"
CIRCUITS_MANIFEST = "circuits.json"
RESULTS_MANIFEST = "results.json"
CIRCUIT_FILE_PREFIX = "circuit"

# keys of the manifest that caller supplied extra parameters may not override
RESERVED_MANIFEST_KEYS = frozenset(
    {
        "algorithm",
        "samples",
        "seed",
        "bitstrings",
        "bondDimension",
        "entDimension",
        "circuits",
    }
)
