import pytest
from PIL import Image

from picsorpix.models.image_source import (FilesystemImageSource, PortfolioImage,
                                           SourceListError, natural_sort_key,
                                           order_images)


def _write_image(path, size=(40, 30)):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, (200, 20, 20)).save(path)


@pytest.fixture
def images_root(tmp_path):
    root = tmp_path / "images"
    _write_image(root / "urbex" / "cover.jpg")
    _write_image(root / "urbex" / "img2.jpg")
    _write_image(root / "urbex" / "img10.jpg")
    (root / "urbex" / "readme.txt").write_text("not an image")
    _write_image(root / "moon" / "m1.png")
    (root / "stray.jpg").write_bytes(b"")
    return root


def test_portfolios_are_sub_directories_with_covers(images_root):
    source = FilesystemImageSource(images_root)

    portfolios = source.list_portfolios()

    assert [p.name for p in portfolios] == ["moon", "urbex"]
    assert portfolios[0].cover_url is None
    assert portfolios[1].cover_url == (images_root / "urbex" / "cover.jpg").resolve().as_uri()


def test_missing_root_lists_no_portfolios(tmp_path):
    assert FilesystemImageSource(tmp_path / "nowhere").list_portfolios() == []


def test_list_images_skips_cover_and_other_files(images_root):
    source = FilesystemImageSource(images_root)

    urls = [image.full_url for image in source.list_images("urbex")]

    assert len(urls) == 2
    assert not any(url.endswith("cover.jpg") for url in urls)
    assert not any(url.endswith("readme.txt") for url in urls)
    assert all(url.startswith("file://") for url in urls)


def test_unknown_portfolio_raises(images_root):
    source = FilesystemImageSource(images_root)

    with pytest.raises(SourceListError):
        source.list_images("missing")
    with pytest.raises(SourceListError):
        source.list_images("../images")


def test_smallest_webp_variant_becomes_placeholder(images_root, tmp_path):
    optimized = tmp_path / "optimized"
    (optimized / "urbex").mkdir(parents=True)
    for name in ("img2-640.webp", "img2-320.webp", "img2-1280.webp", "unrelated.webp"):
        (optimized / "urbex" / name).write_bytes(b"")
    source = FilesystemImageSource(images_root, optimized_root=optimized)

    images = {image.full_url.rsplit("/", 1)[-1]: image for image in source.list_images("urbex")}

    assert images["img2.jpg"].placeholder_url == \
        (optimized / "urbex" / "img2-320.webp").resolve().as_uri()
    assert images["img10.jpg"].placeholder_url is None


def test_listings_are_cached_until_cleared(images_root):
    source = FilesystemImageSource(images_root)
    first = source.list_images("moon")
    _write_image(images_root / "moon" / "m2.png")

    assert source.list_images("moon") == first

    source.clear_cache("portfolio_moon")
    assert len(source.list_images("moon")) == 2

    source.list_portfolios()
    (images_root / "sky").mkdir()
    assert len(source.list_portfolios()) == 2
    source.clear_cache()
    assert len(source.list_portfolios()) == 3


def test_natural_sort_key_orders_numbers_by_value():
    names = ["img10.jpg", "img2.jpg", "IMG1.jpg"]

    assert sorted(names, key=natural_sort_key) == ["IMG1.jpg", "img2.jpg", "img10.jpg"]


def _images(*names):
    return [PortfolioImage(full_url=f"file:///p/{name}") for name in names]


def test_order_images_by_name_and_reverse():
    images = _images("b.jpg", "a10.jpg", "a2.jpg")

    by_name = [i.full_url.rsplit("/", 1)[-1] for i in order_images(images, "name")]
    reverse = [i.full_url.rsplit("/", 1)[-1] for i in order_images(images, "reverse")]

    assert by_name == ["a2.jpg", "a10.jpg", "b.jpg"]
    assert reverse == ["b.jpg", "a10.jpg", "a2.jpg"]
    # The input list keeps its order.
    assert images[0].full_url == "file:///p/b.jpg"


def test_shuffle_is_reproducible_with_a_seed():
    images = _images(*[f"{i}.jpg" for i in range(20)])

    first = order_images(images, "shuffle", seed=7)
    second = order_images(images, "shuffle", seed=7)

    assert first == second
    assert sorted(i.full_url for i in first) == sorted(i.full_url for i in images)


def test_unknown_order_is_rejected():
    with pytest.raises(ValueError):
        order_images([], "random")


def test_order_images_sorts_on_decoded_names(tmp_path):
    images = [PortfolioImage(full_url=(tmp_path / name).as_uri())
              for name in ("é.jpg", "f.jpg", "a b.jpg")]

    names = [i.full_url.rsplit("/", 1)[-1] for i in order_images(images, "name")]

    assert names == ["a%20b.jpg", "f.jpg", "%C3%A9.jpg"]
