"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from kafka_resources.cli import main

if __name__ == "__main__":
    main()
