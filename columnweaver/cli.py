#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Command-line interface for ColumnWeaver.

This module provides the main CLI entry point and all subcommands for
assembling consensus contigs from a read alignment.
"""

import logging
import sys
import click
from pathlib import Path
import yaml

from .version import __version__
from .config.schema import (
    ConfigValidationError,
    apply_overrides,
    load_config,
    save_config_template,
    validate_config,
)
from .assembly_core.alignment_assembler import AlignmentAssembler
from .assembly_core.contig_builder_module import InternalConsistencyError
from .io_utils.alignment_io import AlignmentFormatError, open_file, read_alignment, write_alignment
from .io_utils.assembly_export import build_read2contig, export_read_layout
from .utils.progress import ProgressContext, TqdmProgress

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO', log_file: Path = None):
    """Configure root logging for a CLI run (console plus optional log file)."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def _log_level(ctx, config) -> str:
    if ctx.obj.get('VERBOSE'):
        return 'DEBUG'
    if ctx.obj.get('QUIET'):
        return 'ERROR'
    return config['output']['logging']['level']


def _load_config_or_exit(config_file):
    try:
        return load_config(Path(config_file) if config_file else None)
    except (ConfigValidationError, FileNotFoundError) as e:
        click.echo(f"✗ Error loading configuration: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, verbose, quiet):
    """
    ColumnWeaver: consensus contigs from a read-to-reference alignment

    Builds an overlap graph of aligned reads, covers it with maximal
    non-branching paths and collapses each path into a majority-vote contig.
    """
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet


# ============================================================================
# Configuration Management Commands
# ============================================================================

@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--output', '-o', type=click.Path(), default='columnweaver_config.yaml',
              help='Output configuration file path')
@click.option('--template', '-t',
              type=click.Choice(['default', 'strict', 'permissive']),
              default='default', help='Configuration template type')
def config_init(output, template):
    """Generate a template configuration file with all available parameters."""
    click.echo(f"Generating {template} configuration template: {output}")

    try:
        save_config_template(Path(output), template=template)
        click.echo(f"✓ Configuration file created: {output}")
    except OSError as e:
        click.echo(f"✗ Error creating configuration: {e}", err=True)
        sys.exit(1)


@config.command('validate')
@click.argument('config_file', type=click.Path(exists=True))
def config_validate(config_file):
    """Validate a configuration file."""
    click.echo(f"Validating configuration file: {config_file}")

    config = _load_config_or_exit(config_file)
    errors = validate_config(config)

    if errors:
        click.echo("\n✗ Configuration validation failed:")
        for error in errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(1)

    click.echo("✓ Configuration is valid")
    assembly = config['assembly']
    click.echo("\nKey Settings:")
    click.echo(f"  Min overlap: {assembly['min_overlap']}")
    click.echo(f"  Contig filters: reads>={assembly['min_reads']}, "
               f"coverage>={assembly['min_coverage']}, length>={assembly['min_length']}")


@config.command('show')
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--format', '-f', type=click.Choice(['yaml', 'summary']), default='summary',
              help='Output format')
def config_show(config_file, format):
    """Display configuration settings."""
    config = _load_config_or_exit(config_file)

    if format == 'yaml':
        click.echo(yaml.dump(config, default_flow_style=False, sort_keys=False))
        return

    click.echo(f"Configuration from: {config_file}")
    click.echo("=" * 60)
    click.echo("\nAssembly:")
    for key, value in config['assembly'].items():
        click.echo(f"  {key}: {value}")
    click.echo("\nOutput:")
    click.echo(f"  Contigs: {config['output']['contigs']}")
    click.echo(f"  Graph: {config['output']['graph'] or 'disabled'}")
    click.echo(f"  Layout: {config['output']['layout'] or 'disabled'}")


# ============================================================================
# Assembly Commands
# ============================================================================

@main.command()
@click.argument('alignment_file', type=click.Path(exists=True))
@click.option('--output', '-o', required=True, type=click.Path(),
              help='Output directory')
@click.option('--config', '-c', 'config_file', type=click.Path(exists=True),
              help='Configuration file (YAML)')
@click.option('--format', '-f', 'input_format', default=None,
              help='Alignment format understood by Bio.AlignIO (default: fasta)')
@click.option('--min-overlap', type=int, default=None, help='Minimum overlap in aligned columns')
@click.option('--min-reads', type=int, default=None, help='Minimum supporting reads per contig')
@click.option('--min-coverage', type=float, default=None, help='Minimum mean coverage per contig')
@click.option('--min-length', type=int, default=None, help='Minimum contig length')
@click.option('--sort-alignment/--no-sort-alignment', default=None,
              help='Reorder alignment rows by contig and write the sorted alignment')
@click.option('--graph/--no-graph', 'write_graph', default=True,
              help='Write the overlap graph (GML)')
@click.option('--layout/--no-layout', 'write_layout', default=True,
              help='Write per-read layout records')
@click.option('--progress/--no-progress', 'show_progress', default=None,
              help='Show progress bars')
@click.pass_context
def assemble(ctx, alignment_file, output, config_file, input_format, min_overlap, min_reads,
             min_coverage, min_length, sort_alignment, write_graph, write_layout, show_progress):
    """Assemble consensus contigs from ALIGNMENT_FILE."""
    config = _load_config_or_exit(config_file)
    config = apply_overrides(config, {
        'input.format': input_format,
        'assembly.min_overlap': min_overlap,
        'assembly.min_reads': min_reads,
        'assembly.min_coverage': min_coverage,
        'assembly.min_length': min_length,
        'assembly.sort_alignment': sort_alignment,
        'runtime.show_progress': show_progress,
    })

    errors = validate_config(config)
    if errors:
        for error in errors:
            click.echo(f"✗ {error}", err=True)
        sys.exit(1)

    output_dir = Path(output)
    output_dir.mkdir(parents=True, exist_ok=True)
    log_file = config['output']['logging']['log_file']
    setup_logging(_log_level(ctx, config), output_dir / log_file if log_file else None)

    assembly = config['assembly']
    outputs = config['output']

    try:
        alignment = read_alignment(alignment_file, fmt=config['input']['format'])
    except AlignmentFormatError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    use_bar = config['runtime']['show_progress'] and not ctx.obj.get('QUIET')
    progress = TqdmProgress() if use_bar else ProgressContext()
    assembler = AlignmentAssembler()

    with progress:
        try:
            result = assembler.run(
                alignment,
                min_overlap=assembly['min_overlap'],
                min_reads=assembly['min_reads'],
                min_coverage=assembly['min_coverage'],
                min_length=assembly['min_length'],
                sort_alignment_by_contigs=assembly['sort_alignment'],
                progress=progress,
            )
        except InternalConsistencyError as e:
            logger.error(f"Contig construction failed: {e}")
            click.echo(f"✗ Internal error: {e}", err=True)
            sys.exit(2)

        if result.canceled:
            click.echo("✗ Assembly canceled", err=True)
            sys.exit(130)

        if write_graph and outputs['graph']:
            graph_path = output_dir / outputs['graph']
            with open_file(graph_path, 'w') as f:
                nodes, edges = assembler.write_overlap_graph(f)
            if not ctx.obj.get('QUIET'):
                click.echo(f"Overlap graph: {nodes} nodes, {edges} edges -> {graph_path}")

        contigs_path = output_dir / outputs['contigs']
        with open_file(contigs_path, 'w') as f:
            assembler.write_contigs(f, progress)

        if write_layout and outputs['layout']:
            export_read_layout(
                alignment,
                build_read2contig(assembler.contigs),
                output_dir / outputs['layout'],
                progress=progress,
            )

        if assembly['sort_alignment'] and outputs['sorted_alignment']:
            write_alignment(alignment, output_dir / outputs['sorted_alignment'])

    if not ctx.obj.get('QUIET'):
        click.echo(f"Contigs: {result.contig_count} -> {contigs_path}")


@main.command()
@click.argument('alignment_file', type=click.Path(exists=True))
@click.option('--output', '-o', required=True, type=click.Path(), help='Output GML file')
@click.option('--format', '-f', 'input_format', default='fasta',
              help='Alignment format understood by Bio.AlignIO')
@click.option('--min-overlap', type=int, default=20, help='Minimum overlap in aligned columns')
@click.pass_context
def graph(ctx, alignment_file, output, input_format, min_overlap):
    """Write the overlap graph of ALIGNMENT_FILE as GML."""
    setup_logging('DEBUG' if ctx.obj.get('VERBOSE') else 'WARNING')
    if min_overlap < 1:
        click.echo("✗ --min-overlap must be >= 1", err=True)
        sys.exit(1)

    try:
        alignment = read_alignment(alignment_file, fmt=input_format)
    except AlignmentFormatError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    assembler = AlignmentAssembler()
    assembler.compute_overlap_graph(min_overlap, alignment)
    with open_file(output, 'w') as f:
        nodes, edges = assembler.write_overlap_graph(f)

    if not ctx.obj.get('QUIET'):
        click.echo(f"Overlap graph: {nodes} nodes, {edges} edges -> {output}")


if __name__ == '__main__':
    main()
