"""Services package: crypto codec, export coordinator and audit storage."""
