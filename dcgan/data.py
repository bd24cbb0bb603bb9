"""
Real image loading and batching.

The real images of a single class are loaded once into a tensor and read
through a cyclic cursor, one contiguous batch per training step.
"""

import numpy as np
import torch
import torch.nn.functional as F
from torchvision import datasets

# Datasets that can be filtered to one class: name -> (torchvision class, channels)
DATASETS = {
    'cifar10': (datasets.CIFAR10, 3),
    'mnist': (datasets.MNIST, 1),
}


def load_real_images(config) -> torch.Tensor:
    """
    Load the images of one class as a float tensor.

    Args:
        config: Configuration with 'dataset', 'class_label', 'data_dir',
            'image_size' and 'normalize' keys

    Returns:
        Tensor of shape (N, channels, image_size, image_size), values in [0, 1],
        or [-1, 1] when config['normalize'] is set
    """
    if config['dataset'] not in DATASETS:
        raise ValueError(f"Unknown dataset: {config['dataset']}")
    dataset_cls, channels = DATASETS[config['dataset']]

    dataset = dataset_cls(root=config['data_dir'], train=True, download=True)
    data = torch.as_tensor(np.asarray(dataset.data))
    targets = torch.as_tensor(np.asarray(dataset.targets))

    images = data[targets == config['class_label']]
    if images.dim() == 3:
        images = images.unsqueeze(-1)
    # (N, H, W, C) uint8 -> (N, C, H, W) float in [0, 1]
    images = images.permute(0, 3, 1, 2).float() / 255.0

    if images.size(-1) != config['image_size']:
        images = F.interpolate(images, size=config['image_size'], mode='bilinear',
                               align_corners=False).clamp(0.0, 1.0)

    if config['normalize']:
        images = images * 2.0 - 1.0

    print(f"Loaded {images.size(0)} {config['dataset']} images of class {config['class_label']} "
          f"with {channels} channels")
    return images


def denormalize_images(images: torch.Tensor, normalized: bool = False) -> torch.Tensor:
    """
    Convert images back to uint8 pixels in [0, 255].

    Args:
        images: Image tensor in [0, 1], or [-1, 1] when normalized
        normalized: Whether images are in [-1, 1]

    Returns:
        uint8 tensor of the same shape
    """
    if normalized:
        images = (images + 1.0) / 2.0
    return (images.clamp(0.0, 1.0) * 255.0).round().to(torch.uint8)


class RealImageCursor:
    """
    Cyclic, contiguous batch reader over a fixed image tensor.

    offset is advanced by batch_size after each read and reset to 0 as soon as
    the next read would run past the end, so offset + batch_size never exceeds
    the number of images at read time. Images past the last full batch are
    skipped for that cycle.
    """

    def __init__(self, images: torch.Tensor, batch_size: int, offset: int = 0):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if images.size(0) < batch_size:
            raise ValueError(f"Need at least {batch_size} real images, got {images.size(0)}")
        self.images = images
        self.batch_size = batch_size
        self.offset = offset

    def __len__(self):
        return self.images.size(0)

    def next_batch(self) -> torch.Tensor:
        if self.offset + self.batch_size > len(self):
            self.offset = 0
        batch = self.images[self.offset:self.offset + self.batch_size]
        self.offset += self.batch_size
        if self.offset > len(self) - self.batch_size:
            self.offset = 0
        return batch
