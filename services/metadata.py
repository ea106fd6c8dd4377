"""
NFT Metadata Builder
Turns ticket attributes into the ERC-721 metadata document stored with each ticket.
"""

from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote

from models import NFTAttribute, NFTMetadata

PLACEHOLDER_IMAGE_URL = "https://api.placeholder.com/400x300?text={text}"


def format_price(price: float) -> str:
    """Render a price in ETH without float noise (0.05 -> "0.05 ETH", 1.0 -> "1 ETH")."""
    amount = Decimal(str(price)).normalize()
    return f"{amount:f} ETH"


def build_ticket_metadata(
    ticket_name: str,
    ticket_number: int,
    total_supply: int,
    event_name: str,
    ticket_type: Optional[str] = None,
    price: Optional[float] = None,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> NFTMetadata:
    """
    Build the metadata document for one ticket.

    The output depends only on the arguments, so rebuilding metadata for the
    same ticket always yields the same document (and the same content hash
    once uploaded).

    Attribute order: Event, Ticket Type, Ticket Number, Price, Total Supply.
    Ticket Type and Price are left out when not given.
    """
    attributes: List[NFTAttribute] = [NFTAttribute(trait_type="Event", value=event_name)]
    if ticket_type:
        attributes.append(NFTAttribute(trait_type="Ticket Type", value=ticket_type))
    attributes.append(NFTAttribute(trait_type="Ticket Number", value=ticket_number))
    if price is not None:
        attributes.append(NFTAttribute(trait_type="Price", value=format_price(price)))
    attributes.append(NFTAttribute(trait_type="Total Supply", value=total_supply))

    return NFTMetadata(
        name=f"{ticket_name} #{ticket_number}",
        description=description or f"{ticket_name} for {event_name}",
        image=image_url or PLACEHOLDER_IMAGE_URL.format(text=quote(ticket_name, safe="!'()*")),
        attributes=attributes,
    )
