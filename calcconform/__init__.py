# ==============================================
# CalcConform Engine
# ==============================================
#
# Package Structure:
#
# calcconform/
# ├── model/            # Project / Building / Zone / Shutter + JSON shape
# ├── analysis/         # Compliance classification of a measurement
# ├── storage/          # Durable key-value backends (memory, files, MongoDB)
# ├── persistence/      # Load-once store, favorites, quick-calc history
# ├── search.py         # Multi-keyword shutter search
# ├── export.py         # CSV export of the measurement tree
# ├── config.py         # Configuration management
# ├── logging_config.py # Logging setup
# └── cli.py            # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
