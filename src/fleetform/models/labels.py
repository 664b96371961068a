"""Label keys written on every resource fleetform owns."""

# Marker identifying resources created by fleetform
SOURCE_LABEL = "source"
SOURCE_VALUE = "fleetform"

# Physical name, recorded for humans inspecting the host
NAME_LABEL = "name"

# Last applied fingerprint of a container plan
HASH_LABEL = "ff_hash"

MARKER_LABELS = {SOURCE_LABEL: SOURCE_VALUE}
