"""Version arithmetic and the prepare/tag release flow."""
