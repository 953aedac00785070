import click
import json
import logging
from catalog.exceptions import FatalDiscoveryError
from catalog.report.writer import ReportWriter, load_report
from catalog.scrapers.websites.storefront_scraper import StorefrontScraper
from config.settings import get_settings
from tabulate import tabulate
from tqdm import tqdm
import traceback

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("catalog-cli")


class ProgressBar:
    """Renders the crawl's progress counter as a tqdm bar."""

    def __init__(self, enabled=True):
        self.enabled = enabled
        self.bar = None

    def __call__(self, counter):
        if not self.enabled:
            return
        if self.bar is None:
            self.bar = tqdm(total=counter.total, desc="Crawling", unit="units")
        self.bar.total = counter.total
        self.bar.n = counter.current
        self.bar.refresh()

    def close(self):
        if self.bar is not None:
            self.bar.close()
            self.bar = None


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """Storefront catalog crawler."""
    # Store verbose flag in the Click context instead of a global variable
    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")


@cli.command()
@click.option("--store-url", "-u", help="Base URL of the store (default: STORE_URL setting)")
@click.option(
    "--download-images/--no-download-images",
    default=None,
    help="Save collection and product images (default: DOWNLOAD_IMAGES setting)",
)
@click.option("--image-dir", type=click.Path(), help="Directory for downloaded images")
@click.option("--output", "-o", type=click.Path(), help="Report file (default: collections.json)")
@click.option("--timeout", "-t", type=float, help="Seconds to wait for each request")
@click.option("--no-progress", is_flag=True, help="Hide the progress bar")
@click.pass_context
def crawl(ctx, store_url, download_images, image_dir, output, timeout, no_progress):
    """Crawl every collection and product of the store into a JSON report."""
    settings = get_settings()
    progress = ProgressBar(enabled=not no_progress)

    scraper = StorefrontScraper(
        store_url=store_url or settings.STORE_URL,
        collections_path=settings.COLLECTIONS_PATH,
        download_images=settings.DOWNLOAD_IMAGES if download_images is None else download_images,
        image_dir=image_dir or settings.IMAGE_DIR,
        report_writer=ReportWriter(output or settings.REPORT_PATH),
        progress_callback=progress,
        user_agent=settings.USER_AGENT,
        timeout=timeout or settings.REQUEST_TIMEOUT,
    )

    click.echo(f"Crawling {scraper.collections_url}...")
    try:
        report = scraper.crawl()
    except FatalDiscoveryError as e:
        logger.error("Error while scraping: %s", e)
        click.echo(f"Crawl aborted: {str(e)}")
        if ctx.obj["VERBOSE"]:
            click.echo(traceback.format_exc())
        ctx.exit(1)
    finally:
        progress.close()

    click.echo(
        f"Scraping completed: {len(report.collections)} collections, "
        f"{report.product_count} products saved to {scraper.report_writer.path}"
    )


@cli.command()
@click.option("--input", "-i", "input_path", type=click.Path(), help="Report file (default: collections.json)")
@click.option(
    "--format-type",
    "-f",
    type=click.Choice(["text", "table", "csv"]),
    default="table",
    help="Output format (default: table)",
)
@click.option("--output", "-o", type=click.Path(), help="Save summary to file")
@click.pass_context
def summary(ctx, input_path, format_type, output):
    """Summarize a crawl report per collection."""
    path = input_path or get_settings().REPORT_PATH
    try:
        collections = load_report(path)
    except FileNotFoundError:
        click.echo(f"Report not found: {path}")
        ctx.exit(1)
    except json.JSONDecodeError as e:
        click.echo(f"Error parsing report {path}: {str(e)}")
        ctx.exit(1)

    result_output = format_summary(collections, format_type)

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(result_output)
        click.echo(f"Summary written to {output}")
    else:
        click.echo("\n" + result_output)


def _effective_price(product):
    """Price a customer pays: the sale price when there is one."""
    return product["salePriceCents"] or product["regularPriceCents"]


def _format_cents(cents):
    return f"{cents / 100:.2f}" if cents is not None else "-"


def summarize_collection(collection):
    """Product count, sale count and price range of a serialized collection."""
    products = collection.get("products", [])
    prices = [_effective_price(p) for p in products]
    return {
        "name": collection.get("name", ""),
        "slug": collection.get("slug", ""),
        "products": len(products),
        "on_sale": sum(1 for p in products if p["salePriceCents"]),
        "min_price": min(prices) if prices else None,
        "max_price": max(prices) if prices else None,
    }


def format_summary(collections, format_type):
    """Format a per-collection summary based on specified format type."""
    if not collections:
        return "No collections found."

    rows = [summarize_collection(c) for c in collections]

    if format_type == "text":
        lines = [f"Found {len(rows)} collections:"]
        for i, row in enumerate(rows, 1):
            lines.append(f"\n{i}. {row['name']} ({row['slug']})")
            lines.append(f"   Products: {row['products']} ({row['on_sale']} on sale)")
            if row["products"]:
                lines.append(
                    f"   Prices: {_format_cents(row['min_price'])} - {_format_cents(row['max_price'])}"
                )

        return "\n".join(lines)

    headers = ["Collection", "Slug", "Products", "On Sale", "Lowest", "Highest"]
    table_data = [
        [
            row["name"],
            row["slug"],
            row["products"],
            row["on_sale"],
            _format_cents(row["min_price"]),
            _format_cents(row["max_price"]),
        ]
        for row in rows
    ]

    if format_type == "csv":
        import csv
        from io import StringIO

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(headers)
        writer.writerows(table_data)
        return output.getvalue()

    # table format
    return tabulate(table_data, headers=headers, tablefmt="grid")


if __name__ == "__main__":
    # This runs the Click application
    cli.main(obj={})
