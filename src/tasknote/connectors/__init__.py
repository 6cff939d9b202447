"""
Transports.

- console_connector.py: blocking REPL + stdout messenger
- matrix_client.py / matrix_connector.py: Matrix via matrix-nio
- runtime.py: background event loop hosting the async services
"""
