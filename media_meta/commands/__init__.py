"Subcommands of the media-meta command line."
