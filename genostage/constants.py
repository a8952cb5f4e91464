# File: genostage/constants.py
# Location: genostage/genostage/constants.py

"""
Shared constants for file parsing, archive detection and mutation annotation.
"""

# Field separator for every delimited table read or written by genostage
VALUE_DELIMITER = "\t"

# Header of the column holding case/sample identifiers in mutation tables
MUTATION_CASE_ID_COLUMN_HEADER = "Tumor_Sample_Barcode"

# Header of the probe column in a methylation correlation table
CORRELATE_METH_PROBE_COLUMN_HEADER = "Meth_Probe"

# Zero-based column of the genome build token in a mutation table data row,
# used when the header does not name the build column
NCBI_BUILD_COLUMN_INDEX = 3

# Header names (any case) that mark the genome build column
NCBI_BUILD_COLUMN_HEADERS = ("ncbi_build", "build")

# Tokens marking the older genome build. Numeric aliases match as a
# substring ("36", "36.1"), named aliases must match exactly.
OLD_BUILD_NUMERIC_ALIAS = "36"
OLD_BUILD_NAMED_ALIASES = ("hg18",)

# Substitution tags used in data filenames and metadata templates
TUMOR_TYPE_TAG = "<TUMOR_TYPE>"
TUMOR_TYPE_NAME_TAG = "<TUMOR_TYPE_NAME>"
CANCER_STUDY_TAG = "<CANCER_STUDY>"
NUM_GENES_TAG = "<NUM_GENES>"
NUM_CASES_TAG = "<NUM_CASES>"

GZIP_EXTENSION = ".gz"
TAR_GZIP_EXTENSION = "tar.gz"
GZIP_MAGIC = b"\x1f\x8b"

MAF_FILE_EXT = "maf"

FILE_URL_PREFIX = "file://"

CASE_LISTS_DIRECTORY = "case_lists"
