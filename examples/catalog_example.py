"""
Example: Resolving and Subsetting dClimate Datasets

This example walks through listing the STAC catalog, loading a dataset
variant, merging finalized and provisional variants, and selecting
points, regions and time windows from the result.
"""

import asyncio

import dclimate_client as dc
from dclimate_client.utils import catalog_to_dataframe

dc.setup_logging(level="INFO")


async def main():
    async with dc.DClimateClient() as client:

        # ====================================================================
        # Example 1: List Available Datasets
        # ====================================================================

        print("=" * 70)
        print("Example 1: List Available Datasets")
        print("=" * 70)

        listing = await client.list_available_datasets()
        frame = catalog_to_dataframe(listing)
        print(frame[["organization", "collection", "dataset", "variant"]].to_string(index=False))

        # ====================================================================
        # Example 2: Load One Variant
        # ====================================================================

        print("\n" + "=" * 70)
        print("Example 2: Load One Variant")
        print("=" * 70)

        request = dc.DatasetRequest("2m_temperature", collection="era5", variant="finalized")
        view, metadata = await client.load_dataset(request)
        print(f"\nPath:   {metadata.path}")
        print(f"CID:    {metadata.cid}")
        print(f"Source: {metadata.source}")
        print(view)

        # ====================================================================
        # Example 3: Spatial and Temporal Selection
        # ====================================================================

        print("\n" + "=" * 70)
        print("Example 3: Spatial and Temporal Selection")
        print("=" * 70)

        january = dc.TimeRange("2023-01-31", "2023-01-01")   # order does not matter
        nyc = view.point(40.7128, -74.0060).time_range(january)
        print(f"\nNew York, January 2023: {nyc.sizes}")

        region = view.rectangle(40.0, -75.0, 41.0, -73.0)
        print(f"Rectangle around NYC: {region.sizes}")

        nearby = view.circle(40.7128, -74.0060, radius_km=50)
        print(f"Within 50 km of NYC: {nearby.sizes}")

        # ====================================================================
        # Example 4: Automatic Variant Concatenation
        # ====================================================================

        print("\n" + "=" * 70)
        print("Example 4: Automatic Variant Concatenation")
        print("=" * 70)

        view, metadata = await client.load_dataset(
            dc.DatasetRequest("2m_temperature", collection="era5"),
            dc.LoadOptions(auto_concatenate=True),
        )
        print(f"\nMerged variants: {metadata.concatenated_variants}")
        print(dc.get_time_info(view.data))

        # ====================================================================
        # Example 5: Handling Resolution Errors
        # ====================================================================

        print("\n" + "=" * 70)
        print("Example 5: Handling Resolution Errors")
        print("=" * 70)

        try:
            await client.load_dataset(dc.DatasetRequest("total_precipitation", collection="era5"))
        except dc.VariantRequiredAmbiguousError as e:
            print(f"\nPick a variant: {e.available}")
        except dc.DatasetNotFoundError as e:
            print(f"\nNot found: {e.message}")


if __name__ == "__main__":
    asyncio.run(main())

    # Blocking helper for scripts
    ds = dc.open_dclimate_dataset("2m_temperature", collection="era5", variant="finalized")
    print(ds)
