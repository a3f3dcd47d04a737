"""
Contact Store MCP Server

Exposes the shared ContactStore as MCP tools:
- Status: Permission state and access requests
- Read: List, search and get contacts
- Write: Add, update and delete contacts
"""

import logging
from typing import Optional

from fastmcp import FastMCP

from . import tools
from .manager import store_manager

logger = logging.getLogger(__name__)

mcp = FastMCP("Contact Store")

# =============================================================================
# HEALTH
# =============================================================================
@mcp.tool()
def ping() -> str:
    """Health check. Returns pong if the contact store MCP is running."""
    return "pong from Contact Store 📇"

# =============================================================================
# STATUS TOOLS
# =============================================================================
@mcp.tool()
async def contacts_status() -> str:
    """
    Show the current contacts permission state.

    Returns:
        One of: authorized, limited, not_determined, denied, restricted
    """
    return await tools.contacts_status(store_manager.get_store())

@mcp.tool()
async def contacts_request_access() -> str:
    """
    Request permission to the address book.

    Returns:
        Whether access was granted, or an error message
    """
    return await tools.contacts_request_access(store_manager.get_store())

# =============================================================================
# READ TOOLS
# =============================================================================
@mcp.tool()
async def contacts_list(sort: str = "none", limit: int = 100) -> str:
    """
    List all contacts.

    Args:
        sort: none, user_default, given_name or family_name (default: none)
        limit: Maximum contacts to show (default: 100)

    Returns:
        Formatted contact list
    """
    return await tools.contacts_list(store_manager.get_store(), sort, limit)

@mcp.tool()
async def contacts_search(name: str) -> str:
    """
    Search contacts by name.

    Args:
        name: Name to search for

    Returns:
        Formatted list of matching contacts
    """
    return await tools.contacts_search(store_manager.get_store(), name)

@mcp.tool()
async def contacts_get(identifier: str) -> str:
    """
    Get a contact by identifier.

    Args:
        identifier: Contact identifier

    Returns:
        Formatted contact details
    """
    return await tools.contacts_get(store_manager.get_store(), identifier)

# =============================================================================
# WRITE TOOLS
# =============================================================================
@mcp.tool()
async def contacts_add(
    given_name: Optional[str] = None,
    family_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    organization: Optional[str] = None,
    title: Optional[str] = None,
    notes: Optional[str] = None,
    container_id: Optional[str] = None
) -> str:
    """
    Create a contact.

    Args:
        given_name: First name
        family_name: Last name
        email: Email address
        phone: Phone number
        organization: Company name
        title: Job title
        notes: Free-form notes
        container_id: Container (group) to add the contact to

    Returns:
        Success message with the new identifier
    """
    return await tools.contacts_add(
        store_manager.get_store(), given_name, family_name, email, phone,
        organization, title, notes, container_id
    )

@mcp.tool()
async def contacts_update(
    identifier: str,
    given_name: Optional[str] = None,
    family_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    organization: Optional[str] = None,
    title: Optional[str] = None,
    notes: Optional[str] = None
) -> str:
    """
    Update a contact. Only the fields given are changed.

    Args:
        identifier: Contact identifier

    Returns:
        Success or error message
    """
    return await tools.contacts_update(
        store_manager.get_store(), identifier, given_name, family_name, email,
        phone, organization, title, notes
    )

@mcp.tool()
async def contacts_delete(identifier: str) -> str:
    """
    Delete a contact.

    Args:
        identifier: Contact identifier

    Returns:
        Success or error message
    """
    return await tools.contacts_delete(store_manager.get_store(), identifier)

# =============================================================================
# MAIN
# =============================================================================
def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    mcp.run(transport="http", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
