"""
Tests for NFT metadata building.
"""
from services.metadata import build_ticket_metadata, format_price


class TestMetadataBuilder:
    """Test suite for ticket metadata documents."""

    def test_full_metadata_document(self):
        """All attributes are present in a fixed order."""
        metadata = build_ticket_metadata(
            ticket_name="VIP Pass",
            ticket_number=7,
            total_supply=50,
            event_name="Summer Fest",
            ticket_type="VIP",
            price=0.05,
            description="Backstage access",
            image_url="https://cdn.example.com/vip.png",
        )

        assert metadata.name == "VIP Pass #7"
        assert metadata.description == "Backstage access"
        assert metadata.image == "https://cdn.example.com/vip.png"
        assert [(a.trait_type, a.value) for a in metadata.attributes] == [
            ("Event", "Summer Fest"),
            ("Ticket Type", "VIP"),
            ("Ticket Number", 7),
            ("Price", "0.05 ETH"),
            ("Total Supply", 50),
        ]

    def test_minimal_metadata_keeps_required_attributes(self):
        """Ticket Number and Total Supply are always there; optional traits are dropped."""
        metadata = build_ticket_metadata("General", 1, 3, "Summer Fest")

        trait_types = [a.trait_type for a in metadata.attributes]
        assert trait_types == ["Event", "Ticket Number", "Total Supply"]
        assert metadata.description == "General for Summer Fest"

    def test_placeholder_image_is_url_encoded(self):
        metadata = build_ticket_metadata("VIP Pass & Drinks", 1, 1, "Summer Fest")
        assert metadata.image == "https://api.placeholder.com/400x300?text=VIP%20Pass%20%26%20Drinks"

    def test_metadata_is_deterministic(self):
        """Same inputs, same document."""
        first = build_ticket_metadata("General", 3, 10, "Summer Fest", "GA", 1.5)
        second = build_ticket_metadata("General", 3, 10, "Summer Fest", "GA", 1.5)
        assert first.model_dump_json() == second.model_dump_json()

    def test_price_formatting(self):
        assert format_price(0.05) == "0.05 ETH"
        assert format_price(1.0) == "1 ETH"
        assert format_price(100) == "100 ETH"
        assert format_price(0) == "0 ETH"
