# pump_buyback/trading/__init__.py
