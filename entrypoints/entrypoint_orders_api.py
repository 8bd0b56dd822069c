#!/usr/bin/env python3
# entrypoint_orders_api.py
"""
Точка входа для запуска Orders API в Docker контейнере.
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from main import main


if __name__ == "__main__":
    instance_id = os.getenv("ORDERS_API_INSTANCE_ID", "0")
    print(f"Запуск Orders API instance #{instance_id}")

    try:
        asyncio.run(main(mode="orders_api"))
    except KeyboardInterrupt:
        pass
