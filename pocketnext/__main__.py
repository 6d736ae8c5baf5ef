from pocketnext.pipeline import cli

cli()
