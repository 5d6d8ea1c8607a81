"""Service discovery subscribers, the subscriber register, DNS SRV discovery and balancers."""