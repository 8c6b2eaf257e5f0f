"""
Fleet Inventory Modules

- inventory: Tenants, gateways, peripheral devices, device types, gateway logs
"""
from src.modules import inventory  # noqa: F401  registers models on the metadata
