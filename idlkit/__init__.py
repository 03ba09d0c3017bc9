"""idlkit: IDL-driven type resolution and argument encoding for Anchor programs."""
