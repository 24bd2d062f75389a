"""File readers, wire framing and the bulk HTTP client."""
