"""BranchTree CLI subcommands."""
