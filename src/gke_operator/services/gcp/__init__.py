"""Google Kubernetes Engine integration."""
