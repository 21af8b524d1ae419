"""
Push gateway service package.

Accepts pushed metric files on /metric, stores each as one object, and
serves the merged Prometheus exposition of every stored file on / and
/metrics.
"""
