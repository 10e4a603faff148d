"""Core sale components: phases, auction, settlement, assets and storage."""
