# pump_buyback/utils/__init__.py
