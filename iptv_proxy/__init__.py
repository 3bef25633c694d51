"""IPTV stream relay: token-gated streamlink proxy for browser players."""
