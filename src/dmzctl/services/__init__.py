"""Services for talking to the router and managing the browser process."""
