"""devprov: provision the BOSH director on a local development VM."""
