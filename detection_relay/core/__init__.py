"""Core relay machinery: error sink, DNS cache, bulk queue and process context."""
