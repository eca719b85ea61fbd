"""Multi-vendor fulfillment adapters with a canonical operation surface."""
